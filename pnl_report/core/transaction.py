from collections import Counter
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pnl_report.core.assets import is_usd_like
from pnl_report.core.auto_invest import AutoInvestSubscription
from pnl_report.core.decimals import ZERO, nice_string
from pnl_report.core.models import FEE_OPERATIONS, TRADE_OPERATIONS, Operation, RawAccountChange
from pnl_report.core.wallet import WalletDiff
from pnl_report.utils.time_converter import utc_time_to_string


class TransactionType(Enum):
    UNKNOWN = "Unknown"
    BUY = "Buy"
    SELL = "Sell"
    COIN_TO_COIN = "Coin-to-coin"
    DEPOSIT = "Deposit"
    WITHDRAW = "Withdraw"
    AUTO_INVEST = "Auto-invest"
    SAVINGS_SUBSCRIPTION = "Savings subscription"
    SAVINGS_REDEMPTION = "Savings redemption"
    SAVINGS_INTEREST = "Savings interest"
    DISTRIBUTION = "Distribution"


@dataclass(frozen=True)
class Transaction:
    """
    A group of raw changes sharing one timestamp (auto-invest legs are the
    exception, see grouping). Starts as UNKNOWN, classification returns a new
    instance with the concrete type and its legs, processing returns another
    instance with the computed prices and PNL. Instances are never changed.
    """
    utc_time: int
    changes: Tuple[RawAccountChange, ...] = ()
    type: TransactionType = TransactionType.UNKNOWN
    subscription: Optional[AutoInvestSubscription] = field(default=None, compare=False)

    # Legs, set by classification
    base_currency: Optional[str] = None
    base_amount: Optional[Decimal] = None
    quote_currency: Optional[str] = None
    quote_amount: Optional[Decimal] = None
    fee_currency: Optional[str] = None
    fee: Optional[Decimal] = None           # negative when a fee was paid

    # Set by processing
    fee_in_usdt: Optional[Decimal] = None
    avg_price_in_usdt: Optional[Decimal] = None
    base_obtain_price_in_usdt: Optional[Decimal] = None
    pnl: Optional[Decimal] = None

    def append(self, change: RawAccountChange) -> "Transaction":
        return replace(self, changes=self.changes + (change,))

    def with_subscription(self, subscription: AutoInvestSubscription) -> "Transaction":
        return replace(self, type=TransactionType.AUTO_INVEST, subscription=subscription)

    def get_operation_multiset(self) -> Dict[str, int]:
        return dict(Counter(change.operation.value for change in self.changes))

    def get_operation_diff(self) -> WalletDiff:
        """The wallet change implied by summing all raw changes."""
        diff = WalletDiff()
        for change in self.changes:
            diff.add(change.asset, change.amount)
        return diff

    def get_merged_changes(self) -> List[RawAccountChange]:
        """Partial fills merged: one change per (operation, asset), in order of appearance."""
        groups: Dict[Tuple[Operation, str], List[RawAccountChange]] = {}
        for change in self.changes:
            groups.setdefault((change.operation, change.asset), []).append(change)
        return [RawAccountChange.merge(group) for group in groups.values()]

    def get_buy_type_changes(self) -> List[RawAccountChange]:
        return [c for c in self.get_merged_changes()
                if c.operation in TRADE_OPERATIONS and c.amount > ZERO]

    def get_sell_type_changes(self) -> List[RawAccountChange]:
        return [c for c in self.get_merged_changes()
                if c.operation in TRADE_OPERATIONS and c.amount < ZERO]

    def get_fee_changes(self) -> List[RawAccountChange]:
        return [c for c in self.get_merged_changes() if c.operation in FEE_OPERATIONS]

    # Auto-invest legs

    def get_spend_changes(self) -> List[RawAccountChange]:
        return [c for c in self.get_merged_changes()
                if c.operation == Operation.AUTO_INVEST and is_usd_like(c.asset) and c.amount < ZERO]

    def get_acquire_changes(self) -> List[RawAccountChange]:
        return [c for c in self.get_merged_changes()
                if c.operation == Operation.AUTO_INVEST and not is_usd_like(c.asset) and c.amount > ZERO]

    def get_bought_assets(self) -> List[str]:
        return [c.asset for c in self.get_acquire_changes()]

    def get_invested_asset(self) -> Optional[str]:
        spends = self.get_spend_changes()
        return spends[0].asset if spends else None

    def get_invested_amount(self) -> Optional[Decimal]:
        spends = self.get_spend_changes()
        return spends[0].amount if spends else None

    def __str__(self) -> str:
        when = utc_time_to_string(self.utc_time)
        if self.type in (TransactionType.BUY, TransactionType.SELL, TransactionType.COIN_TO_COIN):
            return (f"{self.type.value} {nice_string(self.base_amount)} "
                    f"{self.base_currency}/{self.quote_currency} @ {when}")
        if self.type == TransactionType.AUTO_INVEST:
            legs = ", ".join(f"{nice_string(c.amount)} {c.asset}" for c in self.get_merged_changes())
            return f"Auto-Invest {legs} @ {when}"
        if self.base_currency is not None:
            return f"{self.type.value} {nice_string(self.base_amount)} {self.base_currency} @ {when}"
        return f"{self.type.value} transaction @ {when}"
