from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pnl_report.core.decimals import nice_string
from pnl_report.core.exceptions import DataSourceError, InvalidArgumentError
from pnl_report.utils.time_converter import utc_time_to_string


class AccountType(Enum):
    SPOT = "SPOT"
    EARN = "EARN"

    @classmethod
    def from_string(cls, s: str) -> "AccountType":
        """Parse the capitalized form used in the statement CSV ("Spot", "Earn")."""
        try:
            return cls(s.strip().upper())
        except (ValueError, AttributeError):
            raise DataSourceError(f"Invalid account type string: {s}")


class Operation(Enum):
    BUY = "Buy"
    SELL = "Sell"
    FEE = "Fee"
    TRANSACTION_RELATED = "Transaction Related"
    TRANSACTION_BUY = "Transaction Buy"
    TRANSACTION_SPEND = "Transaction Spend"
    TRANSACTION_REVENUE = "Transaction Revenue"
    TRANSACTION_SOLD = "Transaction Sold"
    TRANSACTION_FEE = "Transaction Fee"
    BINANCE_CONVERT = "Binance Convert"
    DEPOSIT = "Deposit"
    WITHDRAW = "Withdraw"
    AUTO_INVEST = "Auto-Invest Transaction"
    SAVINGS_SUBSCRIPTION = "Simple Earn Flexible Subscription"
    SAVINGS_REDEMPTION = "Simple Earn Flexible Redemption"
    SAVINGS_INTEREST = "Simple Earn Flexible Interest"
    DISTRIBUTION = "Distribution"
    CASHBACK_VOUCHER = "Cashback Voucher"
    COMMISSION_REBATE = "Commission Rebate"

    @classmethod
    def from_string(cls, s: str) -> "Operation":
        """Parse the operation column of the Binance statement, older names included."""
        key = s.strip() if s else ""
        op = _OPERATION_ALIASES.get(key.lower())
        if op is None:
            raise DataSourceError(f"Invalid operation string: {s}")
        return op


_OPERATION_ALIASES: Dict[str, Operation] = {op.value.lower(): op for op in Operation}
_OPERATION_ALIASES.update({
    "savings purchase": Operation.SAVINGS_SUBSCRIPTION,
    "savings principal redemption": Operation.SAVINGS_REDEMPTION,
    "savings interest": Operation.SAVINGS_INTEREST,
    "auto-invest": Operation.AUTO_INVEST,
    "airdrop assets": Operation.DISTRIBUTION,
    "card cashback": Operation.CASHBACK_VOUCHER,
    "commission history": Operation.COMMISSION_REBATE,
    "referral commission": Operation.COMMISSION_REBATE,
    "large otc trading": Operation.BINANCE_CONVERT,
})

# Legs of a trade. Positive amount = BUY-type leg, negative amount = SELL-type leg
TRADE_OPERATIONS = frozenset({
    Operation.BUY, Operation.SELL, Operation.TRANSACTION_RELATED,
    Operation.TRANSACTION_BUY, Operation.TRANSACTION_SPEND,
    Operation.TRANSACTION_REVENUE, Operation.TRANSACTION_SOLD,
    Operation.BINANCE_CONVERT,
})
FEE_OPERATIONS = frozenset({Operation.FEE, Operation.TRANSACTION_FEE})
INCOME_OPERATIONS = frozenset({
    Operation.DISTRIBUTION, Operation.CASHBACK_VOUCHER, Operation.COMMISSION_REBATE,
})


class ExtraInfoType(Enum):
    ASSET_PRICE = "ASSET_PRICE"
    EXCHANGE_RATE = "EXCHANGE_RATE"
    AUTO_INVEST_PROPORTIONS = "AUTO_INVEST_PROPORTIONS"

    @classmethod
    def from_string(cls, s: str) -> "ExtraInfoType":
        try:
            return cls(s.strip().upper())
        except (ValueError, AttributeError):
            raise DataSourceError(f"Invalid extra info type: {s}")


@dataclass(frozen=True)
class RawAccountChange:
    """
    One single, atomic account change (part of a larger transaction).
    """
    utc_time: int              # UTC timestamp, milliseconds
    account: AccountType
    operation: Operation
    asset: str                 # coin or fiat symbol
    amount: Decimal            # signed: negative = removed from the account
    remark: str = ""

    def with_asset(self, asset: str) -> "RawAccountChange":
        """The only allowed modification: asset symbol normalization."""
        return replace(self, asset=asset)

    @staticmethod
    def merge(changes: Optional[List["RawAccountChange"]]) -> "RawAccountChange":
        """
        Merge changes sharing timestamp, operation and asset into one change.
        The amount is the sum of all amounts.

        Raises:
            InvalidArgumentError: on an empty list or when timestamps, operations
                or assets differ.
        """
        if not changes:
            raise InvalidArgumentError("Can't merge an empty list of changes")
        first = changes[0]
        total = Decimal(0)
        for change in changes:
            if change.utc_time != first.utc_time:
                raise InvalidArgumentError(f"Can't merge changes with different timestamps: {changes}")
            if change.operation != first.operation:
                raise InvalidArgumentError(f"Can't merge changes with different operations: {changes}")
            if change.asset != first.asset:
                raise InvalidArgumentError(f"Can't merge changes with different assets: {changes}")
            total += change.amount
        return replace(first, amount=total)

    def __str__(self) -> str:
        return (f"RawAccountChange{{utcTime={utc_time_to_string(self.utc_time)}, "
                f"account={self.account.value}, operation={self.operation.value}, "
                f"asset={self.asset}, amount={nice_string(self.amount)}, remark={self.remark}}}")


@dataclass(frozen=True)
class ExtraInfoEntry:
    """
    One unit of user-provided information, e.g. a price or an exchange rate.
    The meaning of `value` depends on `type`. It may also hold a hint text
    ("<BTC price in USD on 2022-12-20>") when the entry describes missing info.
    """
    utc_timestamp: int
    type: ExtraInfoType
    asset: Optional[str]
    value: str


@dataclass(frozen=True)
class AnnualReport:
    """Year-end summary. `*_reference` values are in USDT, `*_home` in the home currency."""
    timestamp: int
    pnl_reference: Decimal
    exchange_rate: Decimal
    pnl_home: Decimal
    wallet_value_reference: Decimal
    wallet_value_home: Decimal
