from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from pnl_report.core.decimals import ZERO, nice_string
from pnl_report.core.transaction import Transaction
from pnl_report.core.wallet import Wallet, WalletDiff
from pnl_report.utils.time_converter import get_utc_year


@dataclass
class WalletSnapshot:
    """
    Wallet state and running PNL (USDT) right after `transaction`.
    Treated as immutable once the processor for its transaction has returned.
    """
    transaction: Optional[Transaction] = None
    wallet: Wallet = field(default_factory=Wallet)
    pnl: Decimal = ZERO

    @classmethod
    def create_empty(cls) -> "WalletSnapshot":
        return cls()

    def prepare_for_transaction(self, transaction: Transaction) -> "WalletSnapshot":
        """A copy of this snapshot (own wallet copy) to be filled in by `transaction`."""
        return WalletSnapshot(transaction=transaction, wallet=self.wallet.copy(), pnl=self.pnl)

    def add_asset(self, asset: str, amount: Decimal, obtain_price: Decimal) -> None:
        self.wallet.add_asset(asset, amount, obtain_price)

    def decrease_asset(self, asset: str, amount: Decimal) -> None:
        self.wallet.decrease_asset(asset, amount)

    def add_pnl(self, transaction_pnl: Decimal) -> None:
        self.pnl += transaction_pnl

    @property
    def timestamp(self) -> int:
        return self.transaction.utc_time

    @property
    def year(self) -> int:
        return get_utc_year(self.timestamp)

    def get_avg_obtain_price(self, asset: str) -> Decimal:
        return self.wallet.get_avg_obtain_price(asset)

    def get_diff_from(self, old_snapshot: "WalletSnapshot") -> WalletDiff:
        return self.wallet.get_diff_from(old_snapshot.wallet)

    def __str__(self) -> str:
        after = f" after {self.transaction}" if self.transaction is not None else ""
        return f"{self.wallet.get_asset_count()} assets, PNL={nice_string(self.pnl)}{after}"
