from decimal import Decimal
from typing import Any, Dict, Optional

from pnl_report.core.decimals import nice_string
from pnl_report.core.models import AnnualReport, ExtraInfoEntry
from pnl_report.core.snapshot import WalletSnapshot
from pnl_report.utils.time_converter import utc_time_to_date_string, utc_time_to_string

TRANSACTION_LOG_COLUMNS = [
    "Unix timestamp", "UTC time", "Type",
    "Base currency", "Base amount", "Quote currency", "Quote amount",
    "Fee currency", "Fee", "Fee in USDT",
    "Avg price in USDT", "Base obtain price in USDT",
    "PNL", "Running PNL", "Wallet",
]

ANNUAL_REPORT_COLUMNS = [
    "Year end", "PNL (USDT)", "Exchange rate", "PNL (home currency)",
    "Wallet value (USDT)", "Wallet value (home currency)",
]

EXTRA_INFO_COLUMNS = ["Unix timestamp", "UTC time", "Type", "Asset", "Value"]


class ReportMapper:
    """
    Converts report domain objects into CSV rows (column name -> text).
    With decimal_comma, decimals are written as "1,5" instead of "1.5".
    """

    def __init__(self, decimal_comma: bool = False):
        self.decimal_comma = decimal_comma

    def number(self, value: Optional[Decimal]) -> str:
        if value is None:
            return ""
        text = nice_string(value)
        return text.replace(".", ",") if self.decimal_comma else text

    def snapshot_to_row(self, snapshot: WalletSnapshot) -> Dict[str, Any]:
        t = snapshot.transaction
        wallet = snapshot.wallet
        holdings = " ".join(
            f"{self.number(wallet.get_asset_amount(a))} {a}" for a in wallet
            if wallet.get_asset_amount(a) != 0
        )
        return {
            "Unix timestamp": str(t.utc_time),
            "UTC time": utc_time_to_string(t.utc_time),
            "Type": t.type.value,
            "Base currency": t.base_currency or "",
            "Base amount": self.number(t.base_amount),
            "Quote currency": t.quote_currency or "",
            "Quote amount": self.number(t.quote_amount),
            "Fee currency": t.fee_currency or "",
            "Fee": self.number(t.fee),
            "Fee in USDT": self.number(t.fee_in_usdt),
            "Avg price in USDT": self.number(t.avg_price_in_usdt),
            "Base obtain price in USDT": self.number(t.base_obtain_price_in_usdt),
            "PNL": self.number(t.pnl),
            "Running PNL": self.number(snapshot.pnl),
            "Wallet": holdings,
        }

    def annual_report_to_row(self, report: AnnualReport) -> Dict[str, Any]:
        return {
            "Year end": utc_time_to_date_string(report.timestamp),
            "PNL (USDT)": self.number(report.pnl_reference),
            "Exchange rate": self.number(report.exchange_rate),
            "PNL (home currency)": self.number(report.pnl_home),
            "Wallet value (USDT)": self.number(report.wallet_value_reference),
            "Wallet value (home currency)": self.number(report.wallet_value_home),
        }

    @staticmethod
    def extra_info_to_row(entry: ExtraInfoEntry) -> Dict[str, Any]:
        # Extra info is read back by the parser: always '.' decimals
        return {
            "Unix timestamp": str(entry.utc_timestamp),
            "UTC time": utc_time_to_string(entry.utc_timestamp),
            "Type": entry.type.value,
            "Asset": entry.asset or "",
            "Value": entry.value,
        }
