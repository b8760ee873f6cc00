"""
Accounting rules, one processor per transaction type.

Every processor takes the previous wallet snapshot and the extra info entry
for the transaction (or None) and returns a new snapshot. The previous
snapshot is never modified. All prices are average-cost-basis prices in USDT.
"""
from dataclasses import replace
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, Optional

from pnl_report.core.assets import is_usd_like
from pnl_report.core.auto_invest import AutoInvestSubscription
from pnl_report.core.decimals import ONE, ZERO, divide, to_decimal
from pnl_report.core.exceptions import (
    ConfigurationError, InconsistentTransactionError, InvalidArgumentError,
    MissingExtraInfoError, UnknownTransactionError,
)
from pnl_report.core.models import ExtraInfoEntry, ExtraInfoType
from pnl_report.core.snapshot import WalletSnapshot
from pnl_report.core.transaction import Transaction, TransactionType
from pnl_report.core.wallet import Wallet
from pnl_report.utils.time_converter import utc_time_to_date_string


class DepositCostBasis(Enum):
    ZERO = "zero"              # deposited coins arrive at zero cost
    EXTRA_INFO = "extra_info"  # an ASSET_PRICE entry is required for each deposit

    @classmethod
    def from_string(cls, s: str) -> "DepositCostBasis":
        try:
            return cls(s.strip().lower())
        except (ValueError, AttributeError):
            raise ConfigurationError(f"Invalid deposit cost basis: {s} (expected 'zero' or 'extra_info')")


ProcessFn = Callable[[Transaction, WalletSnapshot, Optional[ExtraInfoEntry]], WalletSnapshot]

PROPORTION_SEPARATOR = "|"


def process(transaction: Transaction, previous: WalletSnapshot,
            extra_info: Optional[ExtraInfoEntry] = None) -> WalletSnapshot:
    """Apply the transaction to the previous snapshot, return the new snapshot."""
    processor = _PROCESSORS.get(transaction.type)
    if processor is None:
        raise UnknownTransactionError(f"Can't process transaction of type {transaction.type.value}: {transaction}")
    return processor(transaction, previous, extra_info)


def calculate_fee_in_usdt(transaction: Transaction, wallet: Wallet) -> Decimal:
    """
    Fee value in USDT (negative, like the fee itself). A non-USD fee is valued
    at the fee asset's average obtain price in `wallet`, which must be the
    wallet before the transaction's own changes.
    """
    if transaction.fee is None or transaction.fee_currency is None:
        return ZERO
    if is_usd_like(transaction.fee_currency):
        return transaction.fee
    return transaction.fee * wallet.get_avg_obtain_price(transaction.fee_currency)


def _finish(snapshot: WalletSnapshot, transaction: Transaction, **computed) -> WalletSnapshot:
    snapshot.transaction = replace(transaction, **computed)
    return snapshot


def _check_fee(transaction: Transaction) -> Decimal:
    fee = transaction.fee if transaction.fee is not None else ZERO
    if fee > ZERO:
        raise InconsistentTransactionError(f"Fee is expected to be negative: {transaction}")
    return fee


def _quote_obtain_price(wallet: Wallet, asset: str) -> Decimal:
    price = wallet.get_avg_obtain_price(asset)
    if wallet.get_asset_amount(asset) > ZERO and price > ZERO:
        return price
    return ONE


# Trades

def process_buy(transaction: Transaction, previous: WalletSnapshot,
                extra_info: Optional[ExtraInfoEntry] = None) -> WalletSnapshot:
    """
    Buy a coin with a USD-like asset. Three fee regimes:
    - fee paid in the coin being bought, none of it held before (first BNB
      purchase): the price is backed out from the quote spent and the net amount;
    - fee paid in another coin (BNB): valued at that coin's average price;
    - fee paid in USD, or no fee.
    """
    if not is_usd_like(transaction.quote_currency):
        raise InconsistentTransactionError(f"Buy must be paid with a USD-like asset: {transaction}")
    snapshot = previous.prepare_for_transaction(transaction)
    fee_in_usdt = calculate_fee_in_usdt(transaction, snapshot.wallet)
    fee = _check_fee(transaction)
    base = transaction.base_currency
    bought = transaction.base_amount
    quote_used = -transaction.quote_amount

    if fee != ZERO and transaction.fee_currency == base and fee_in_usdt == ZERO:
        snapshot.decrease_asset(transaction.quote_currency, quote_used)
        quote_price = _quote_obtain_price(snapshot.wallet, transaction.quote_currency)
        obtained = bought + fee
        obtain_price = divide(quote_used, obtained) * quote_price
        snapshot.add_asset(base, obtained, obtain_price)
        return _finish(snapshot, transaction,
                       fee_in_usdt=fee * obtain_price,
                       avg_price_in_usdt=divide(quote_used, bought) * quote_price,
                       base_obtain_price_in_usdt=obtain_price)

    if fee != ZERO and not is_usd_like(transaction.fee_currency):
        snapshot.decrease_asset(transaction.quote_currency, quote_used)
        obtain_price = divide(quote_used - fee_in_usdt, bought)
        snapshot.add_asset(base, bought, obtain_price)
        snapshot.decrease_asset(transaction.fee_currency, -fee)
        return _finish(snapshot, transaction,
                       fee_in_usdt=fee_in_usdt,
                       avg_price_in_usdt=divide(quote_used, bought),
                       base_obtain_price_in_usdt=obtain_price)

    # Fee in USD, or no fee
    usd_used = quote_used - fee_in_usdt
    snapshot.decrease_asset(transaction.quote_currency, quote_used)
    if fee != ZERO:
        snapshot.decrease_asset(transaction.fee_currency, -fee)
    obtain_price = divide(usd_used, bought)
    snapshot.add_asset(base, bought, obtain_price)
    return _finish(snapshot, transaction,
                   fee_in_usdt=fee_in_usdt,
                   avg_price_in_usdt=obtain_price,
                   base_obtain_price_in_usdt=obtain_price)


def process_sell(transaction: Transaction, previous: WalletSnapshot,
                 extra_info: Optional[ExtraInfoEntry] = None) -> WalletSnapshot:
    """
    Sell a coin for a USD-like asset. PNL = USD received net of fee minus the
    sold amount valued at its average obtain price before this transaction.
    """
    snapshot = previous.prepare_for_transaction(transaction)
    fee_in_usdt = calculate_fee_in_usdt(transaction, snapshot.wallet)
    fee = _check_fee(transaction)
    base = transaction.base_currency
    sold = -transaction.base_amount
    obtain_price = snapshot.get_avg_obtain_price(base)

    received_usdt = transaction.quote_amount + fee_in_usdt
    invested_usdt = sold * obtain_price
    pnl = received_usdt - invested_usdt
    snapshot.add_pnl(pnl)

    snapshot.add_asset(transaction.quote_currency, transaction.quote_amount, ONE)
    snapshot.decrease_asset(base, sold)
    if fee != ZERO:
        snapshot.decrease_asset(transaction.fee_currency, -fee)
    return _finish(snapshot, transaction,
                   fee_in_usdt=fee_in_usdt,
                   avg_price_in_usdt=divide(transaction.quote_amount, sold),
                   base_obtain_price_in_usdt=obtain_price,
                   pnl=pnl)


def process_coin_to_coin(transaction: Transaction, previous: WalletSnapshot,
                         extra_info: Optional[ExtraInfoEntry] = None) -> WalletSnapshot:
    """
    Trade between two non-USD coins, treated as selling the given coin for USD
    at its average obtain price (no PNL) and buying the received coin with that USD.
    The received coin inherits the cost basis of the given coin plus the fee.
    """
    snapshot = previous.prepare_for_transaction(transaction)
    fee_in_usdt = calculate_fee_in_usdt(transaction, snapshot.wallet)
    fee = _check_fee(transaction)
    base = transaction.base_currency
    sold_asset = transaction.quote_currency
    sold = -transaction.quote_amount
    cost_usdt = sold * snapshot.get_avg_obtain_price(sold_asset)

    if fee != ZERO and transaction.fee_currency == base:
        received = transaction.base_amount + fee
        extra_cost = ZERO
    else:
        received = transaction.base_amount
        extra_cost = -fee_in_usdt

    snapshot.decrease_asset(sold_asset, sold)
    obtain_price = divide(cost_usdt + extra_cost, received)
    snapshot.add_asset(base, received, obtain_price)
    if fee != ZERO and transaction.fee_currency != base:
        snapshot.decrease_asset(transaction.fee_currency, -fee)
    return _finish(snapshot, transaction,
                   fee_in_usdt=fee_in_usdt,
                   avg_price_in_usdt=divide(cost_usdt, transaction.base_amount),
                   base_obtain_price_in_usdt=obtain_price,
                   pnl=ZERO)


# Transfers

def process_withdraw(transaction: Transaction, previous: WalletSnapshot,
                     extra_info: Optional[ExtraInfoEntry] = None) -> WalletSnapshot:
    """Withdrawal realizes PNL at the asset price supplied for the withdrawal time."""
    asset = transaction.base_currency
    amount = -transaction.base_amount
    realization_price = _asset_price(transaction, extra_info)
    snapshot = previous.prepare_for_transaction(transaction)
    obtain_price = snapshot.get_avg_obtain_price(asset)
    pnl = realization_price * amount - obtain_price * amount
    snapshot.add_pnl(pnl)
    snapshot.decrease_asset(asset, amount)
    return _finish(snapshot, transaction,
                   avg_price_in_usdt=realization_price,
                   base_obtain_price_in_usdt=obtain_price,
                   pnl=pnl)


def process_deposit(transaction: Transaction, previous: WalletSnapshot,
                    extra_info: Optional[ExtraInfoEntry] = None) -> WalletSnapshot:
    """A deposit is not a PNL event. The cost basis is the supplied price, or zero without one."""
    asset = transaction.base_currency
    if is_usd_like(asset):
        price = ONE
    elif _is_price_of(extra_info, asset):
        price = to_decimal(extra_info.value)
    else:
        price = ZERO
    snapshot = previous.prepare_for_transaction(transaction)
    snapshot.add_asset(asset, transaction.base_amount, price)
    return _finish(snapshot, transaction,
                   avg_price_in_usdt=price,
                   base_obtain_price_in_usdt=snapshot.get_avg_obtain_price(asset))


def _asset_price(transaction: Transaction, extra_info: Optional[ExtraInfoEntry]) -> Decimal:
    if _is_price_of(extra_info, transaction.base_currency):
        return to_decimal(extra_info.value)
    if is_usd_like(transaction.base_currency):
        return ONE
    hint = get_necessary_extra_info(transaction)
    raise MissingExtraInfoError(f"Missing {transaction.base_currency} price for {transaction}", [hint])


def _is_price_of(extra_info: Optional[ExtraInfoEntry], asset: str) -> bool:
    return (extra_info is not None and extra_info.type == ExtraInfoType.ASSET_PRICE
            and extra_info.asset == asset)


# Savings and income

def process_savings(transaction: Transaction, previous: WalletSnapshot,
                    extra_info: Optional[ExtraInfoEntry] = None) -> WalletSnapshot:
    """Moving funds between Spot and Earn is a relabeling of the same asset: nothing changes."""
    return previous.prepare_for_transaction(transaction)


def process_income(transaction: Transaction, previous: WalletSnapshot,
                   extra_info: Optional[ExtraInfoEntry] = None) -> WalletSnapshot:
    """Interest, airdrops and cashback: received coins enter the wallet at zero cost."""
    snapshot = previous.prepare_for_transaction(transaction)
    for change in transaction.get_merged_changes():
        price = ONE if is_usd_like(change.asset) else ZERO
        snapshot.add_asset(change.asset, change.amount, price)
    return _finish(snapshot, transaction, pnl=ZERO)


# Auto-invest

def process_auto_invest(transaction: Transaction, previous: WalletSnapshot,
                        extra_info: Optional[ExtraInfoEntry] = None) -> WalletSnapshot:
    """
    Spend leg: the USD leaves the wallet, no coin is priced yet.
    Acquire leg: each coin is bought for its share of the subscription's
    investment amount.
    """
    spends = transaction.get_spend_changes()
    acquisitions = transaction.get_acquire_changes()
    if spends and acquisitions:
        raise InconsistentTransactionError(
            f"Auto-invest spend and acquisition in the same second are ambiguous: {transaction}")
    subscription = transaction.subscription
    if subscription is None:
        raise InconsistentTransactionError(f"Auto-invest without a subscription: {transaction}")
    configure_subscription(subscription, extra_info)

    snapshot = previous.prepare_for_transaction(transaction)
    if spends:
        for spend in spends:
            snapshot.decrease_asset(spend.asset, -spend.amount)
        return _finish(snapshot, transaction, pnl=ZERO)

    if not subscription.has_proportions() and len(subscription.acquired_assets) == 1:
        subscription.add_asset_proportion(subscription.acquired_assets[0], ONE)
    invested_total = ZERO
    obtain_price = ZERO
    for acquisition in acquisitions:
        invested = subscription.get_investment_for_asset(acquisition.asset)
        obtain_price = divide(invested, acquisition.amount)
        snapshot.add_asset(acquisition.asset, acquisition.amount, obtain_price)
        invested_total += invested
    return _finish(snapshot, transaction,
                   quote_amount=-invested_total,
                   avg_price_in_usdt=obtain_price,
                   base_obtain_price_in_usdt=snapshot.get_avg_obtain_price(transaction.base_currency),
                   pnl=ZERO)


def configure_subscription(subscription: AutoInvestSubscription,
                           extra_info: Optional[ExtraInfoEntry]) -> None:
    """Register proportions from an AUTO_INVEST_PROPORTIONS entry, once per subscription."""
    if extra_info is None or extra_info.type != ExtraInfoType.AUTO_INVEST_PROPORTIONS:
        return
    if subscription.has_proportions():
        return
    assets = (extra_info.asset or "").split(PROPORTION_SEPARATOR)
    values = extra_info.value.split(PROPORTION_SEPARATOR)
    if len(assets) != len(values):
        raise InvalidArgumentError(f"Auto-invest proportions do not match assets: {extra_info}")
    for asset, value in zip(assets, values):
        subscription.add_asset_proportion(asset.strip(), to_decimal(value))


# Extra info

def required_extra_info_type(transaction: Transaction) -> Optional[ExtraInfoType]:
    """The kind of extra info entry a transaction reads, if any."""
    if transaction.type in (TransactionType.WITHDRAW, TransactionType.DEPOSIT):
        return ExtraInfoType.ASSET_PRICE
    if transaction.type == TransactionType.AUTO_INVEST:
        return ExtraInfoType.AUTO_INVEST_PROPORTIONS
    return None


def get_necessary_extra_info(transaction: Transaction,
                             deposit_cost_basis: DepositCostBasis = DepositCostBasis.ZERO
                             ) -> Optional[ExtraInfoEntry]:
    """
    The extra info the user must supply for this transaction, with a hint
    text in place of the value. None when nothing is needed.

    Auto-invest proportions are asked for only on the spend leg that starts a
    plan buying several coins. A single-coin plan needs no entry, its coin
    gets proportion 1 when processed.
    """
    date = utc_time_to_date_string(transaction.utc_time)
    asset = transaction.base_currency
    needs_price = (
        transaction.type == TransactionType.WITHDRAW
        or (transaction.type == TransactionType.DEPOSIT and deposit_cost_basis == DepositCostBasis.EXTRA_INFO)
    )
    if needs_price and not is_usd_like(asset):
        return ExtraInfoEntry(transaction.utc_time, ExtraInfoType.ASSET_PRICE, asset,
                              f"<{asset} price in USD on {date}>")

    subscription = transaction.subscription
    if (transaction.type == TransactionType.AUTO_INVEST and subscription is not None
            and transaction.get_spend_changes()
            and subscription.utc_time == transaction.utc_time
            and len(subscription.acquired_assets) > 1):
        assets = subscription.acquired_assets
        hints = PROPORTION_SEPARATOR.join(f"<{a} proportion>" for a in assets)
        return ExtraInfoEntry(transaction.utc_time, ExtraInfoType.AUTO_INVEST_PROPORTIONS,
                              PROPORTION_SEPARATOR.join(assets), hints)
    return None


_PROCESSORS: Dict[TransactionType, ProcessFn] = {
    TransactionType.BUY: process_buy,
    TransactionType.SELL: process_sell,
    TransactionType.COIN_TO_COIN: process_coin_to_coin,
    TransactionType.WITHDRAW: process_withdraw,
    TransactionType.DEPOSIT: process_deposit,
    TransactionType.AUTO_INVEST: process_auto_invest,
    TransactionType.SAVINGS_SUBSCRIPTION: process_savings,
    TransactionType.SAVINGS_REDEMPTION: process_savings,
    TransactionType.SAVINGS_INTEREST: process_income,
    TransactionType.DISTRIBUTION: process_income,
}
