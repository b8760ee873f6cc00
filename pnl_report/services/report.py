from decimal import Decimal
from typing import Iterator, List, Optional

from pnl_report.config.logging import logger
from pnl_report.core.assets import is_usd_like
from pnl_report.core.decimals import ONE, ZERO, nice_string, to_decimal
from pnl_report.core.exceptions import MissingExtraInfoError
from pnl_report.core.extra_info import ExtraInfo
from pnl_report.core.models import AnnualReport, ExtraInfoEntry, ExtraInfoType
from pnl_report.core.snapshot import WalletSnapshot
from pnl_report.core.transaction import Transaction, TransactionType
from pnl_report.core.wallet import Wallet
from pnl_report.services import processors
from pnl_report.services.processors import DepositCostBasis
from pnl_report.utils.time_converter import (
    get_utc_year, get_year_end_timestamp, utc_time_to_date_string, utc_time_to_string,
)

# These transaction types may change the wallet differently than the sum of their raw changes
_DIFF_DISCREPANCY_ALLOWED = (
    TransactionType.SAVINGS_SUBSCRIPTION,
    TransactionType.SAVINGS_REDEMPTION,
)


class Report:
    """
    Profit-and-loss report: the chain of wallet snapshots, one per transaction.
    Transactions must be processed in chronological order, each one against
    the snapshot produced by the previous one.
    """

    def __init__(self, extra_info: ExtraInfo, price_client=None,
                 deposit_cost_basis: DepositCostBasis = DepositCostBasis.ZERO):
        """
        Args:
            extra_info: User-provided prices, exchange rates and proportions.
            price_client: Optional object with get_daily_close_price(asset, timestamp),
                used when extra info has no price for a year-end valuation.
            deposit_cost_basis: Whether deposits read a price from extra info.
        """
        self.extra_info = extra_info
        self.price_client = price_client
        self.deposit_cost_basis = deposit_cost_basis
        self.extra_info_updated = False
        self.wallet_snapshots: List[WalletSnapshot] = []
        self.current_snapshot = WalletSnapshot.create_empty()

    def process(self, transaction: Transaction) -> WalletSnapshot:
        """Process the transaction, store and return the new wallet snapshot."""
        new_snapshot = processors.process(transaction, self.current_snapshot,
                                          self._get_extra_info(transaction))
        snapshot_diff = new_snapshot.get_diff_from(self.current_snapshot)
        operation_diff = transaction.get_operation_diff()
        if snapshot_diff != operation_diff and transaction.type not in _DIFF_DISCREPANCY_ALLOWED:
            if transaction.type == TransactionType.AUTO_INVEST:
                logger.debug(f"Wallet changes for {transaction} differ from operation changes: "
                             f"operation diff {operation_diff}, snapshot diff {snapshot_diff}")
            else:
                logger.warning(f"Wallet changes for {transaction} differ from operation changes: "
                               f"operation diff {operation_diff}, snapshot diff {snapshot_diff}")
        self.wallet_snapshots.append(new_snapshot)
        self.current_snapshot = new_snapshot
        return new_snapshot

    def _get_extra_info(self, transaction: Transaction) -> Optional[ExtraInfoEntry]:
        if (transaction.type == TransactionType.DEPOSIT
                and self.deposit_cost_basis == DepositCostBasis.ZERO):
            return None
        info_type = processors.required_extra_info_type(transaction)
        if info_type is None:
            return None
        if info_type == ExtraInfoType.ASSET_PRICE:
            return self.extra_info.get_asset_price_entry(transaction.utc_time, transaction.base_currency)
        return self.extra_info.get_at_time(transaction.utc_time, info_type)

    def __iter__(self) -> Iterator[WalletSnapshot]:
        return iter(self.wallet_snapshots)

    def __len__(self) -> int:
        return len(self.wallet_snapshots)

    # Annual reports

    def get_year_end_snapshots(self) -> List[WalletSnapshot]:
        """
        For every year from the first to the last transaction: the last
        snapshot at or before that year's end. A year without transactions
        reuses the snapshot carried over from the year before.
        """
        if not self.wallet_snapshots:
            return []
        first_year = self.wallet_snapshots[0].year
        last_year = self.wallet_snapshots[-1].year
        year_end_snapshots = []
        index = 0
        for year in range(first_year, last_year + 1):
            year_end = get_year_end_timestamp(year)
            while (index + 1 < len(self.wallet_snapshots)
                   and self.wallet_snapshots[index + 1].timestamp <= year_end):
                index += 1
            year_end_snapshots.append(self.wallet_snapshots[index])
        return year_end_snapshots

    def create_annual_reports(self) -> List[AnnualReport]:
        """
        Raises:
            MissingExtraInfoError: listing every exchange rate and asset price
                missing at any year end, so all of them can be supplied at once.
        """
        snapshots = self.get_year_end_snapshots()
        if not snapshots:
            return []
        first_year = snapshots[0].year
        missing = []
        for i, snapshot in enumerate(snapshots):
            missing.extend(self.find_missing_year_end_info(snapshot, get_year_end_timestamp(first_year + i)))
        if missing:
            logger.error(f"{len(missing)} year-end exchange rates or prices missing")
            raise MissingExtraInfoError("Year-end exchange rates or prices required", missing)
        return [self._create_year_end_report(snapshot, first_year + i)
                for i, snapshot in enumerate(snapshots)]

    def find_missing_year_end_info(self, snapshot: WalletSnapshot, year_end: int) -> List[ExtraInfoEntry]:
        """Hints for the exchange rate and held-asset prices not found at the year end."""
        missing = []
        if self.extra_info.get_at_time(year_end, ExtraInfoType.EXCHANGE_RATE) is None:
            missing.append(exchange_rate_hint(year_end))
        for asset in snapshot.wallet:
            if snapshot.wallet.get_asset_amount(asset) == ZERO:
                continue
            if self.find_asset_price_at(asset, year_end) is None:
                missing.append(asset_price_hint(asset, year_end))
        return missing

    def _create_year_end_report(self, snapshot: WalletSnapshot, year: int) -> AnnualReport:
        year_end = get_year_end_timestamp(year)
        exchange_rate = self.get_exchange_rate_at(year_end)
        pnl_usd = snapshot.pnl
        wallet_value_usd = self.get_total_wallet_value_at(snapshot.wallet, year_end)
        logger.info(f"Year {year}: PNL {nice_string(pnl_usd)} USDT, "
                    f"wallet value {nice_string(wallet_value_usd)} USDT")
        return AnnualReport(
            timestamp=year_end,
            pnl_reference=pnl_usd,
            exchange_rate=exchange_rate,
            pnl_home=pnl_usd * exchange_rate,
            wallet_value_reference=wallet_value_usd,
            wallet_value_home=wallet_value_usd * exchange_rate,
        )

    def get_total_wallet_value_at(self, wallet: Wallet, timestamp: int) -> Decimal:
        """Total wallet value in USDT, assets valued at their price at the given time."""
        total = ZERO
        for asset in wallet:
            amount = wallet.get_asset_amount(asset)
            if amount == ZERO:
                continue
            total += amount * self.get_asset_price_at(asset, timestamp)
        return total

    def find_asset_price_at(self, asset: str, timestamp: int) -> Optional[Decimal]:
        """Price from extra info, then from the price client. Prices found there are kept in extra info."""
        if is_usd_like(asset):
            return ONE
        price = self.extra_info.get_asset_price_at_time(timestamp, asset)
        if price is None and self.price_client is not None:
            logger.info(f"No {asset} price found in extra info, checking Binance REST API")
            price = self.price_client.get_daily_close_price(asset, timestamp)
            if price is not None:
                self._append_price_to_extra_info(timestamp, asset, price)
        return price

    def get_asset_price_at(self, asset: str, timestamp: int) -> Decimal:
        price = self.find_asset_price_at(asset, timestamp)
        if price is None:
            raise MissingExtraInfoError(
                f"Missing {asset} price at {timestamp} ({utc_time_to_string(timestamp)})",
                [asset_price_hint(asset, timestamp)])
        return price

    def _append_price_to_extra_info(self, timestamp: int, asset: str, price: Decimal) -> None:
        self.extra_info.add(ExtraInfoEntry(timestamp, ExtraInfoType.ASSET_PRICE, asset, nice_string(price)))
        self.extra_info_updated = True

    def get_exchange_rate_at(self, timestamp: int) -> Decimal:
        entry = self.extra_info.get_at_time(timestamp, ExtraInfoType.EXCHANGE_RATE)
        if entry is None:
            hint = exchange_rate_hint(timestamp)
            raise MissingExtraInfoError(
                f"Did not find exchange rate at {utc_time_to_string(timestamp)}", [hint])
        return to_decimal(entry.value)


def exchange_rate_hint(timestamp: int, home_currency: Optional[str] = None) -> ExtraInfoEntry:
    currency = home_currency or "home currency"
    return ExtraInfoEntry(timestamp, ExtraInfoType.EXCHANGE_RATE, home_currency,
                          f"<USD/{currency} rate on {utc_time_to_date_string(timestamp)}>")


def asset_price_hint(asset: str, timestamp: int) -> ExtraInfoEntry:
    return ExtraInfoEntry(timestamp, ExtraInfoType.ASSET_PRICE, asset,
                          f"<{asset} price in USD on {utc_time_to_date_string(timestamp)}>")


def years_covered(transactions: List[Transaction]) -> List[int]:
    if not transactions:
        return []
    first = get_utc_year(transactions[0].utc_time)
    last = get_utc_year(transactions[-1].utc_time)
    return list(range(first, last + 1))
