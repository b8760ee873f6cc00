from dataclasses import dataclass, field
from typing import List, Optional, Set

from pnl_report.config.logging import logger
from pnl_report.core.assets import is_usd_like, normalize_lending_asset
from pnl_report.core.auto_invest import AutoInvestSubscription
from pnl_report.core.decimals import ZERO, nice_string
from pnl_report.core.exceptions import InconsistentTransactionError
from pnl_report.core.models import Operation, RawAccountChange
from pnl_report.core.transaction import Transaction, TransactionType


@dataclass
class _AutoInvestState:
    """
    Accumulator threaded through one grouping run.
    Groups are stored as indices into the transaction list, because a
    transaction is replaced whenever a change is appended to it.
    """
    subscription: Optional[AutoInvestSubscription] = None
    current_group: List[int] = field(default_factory=list)
    previous_group: List[int] = field(default_factory=list)
    current_assets: List[str] = field(default_factory=list)


def update_lending_assets(changes: List[RawAccountChange]) -> List[RawAccountChange]:
    """Rename all LDxxx assets to xxx (LDUSDT -> USDT, LDBTC -> BTC)."""
    return [change.with_asset(normalize_lending_asset(change.asset)) for change in changes]


def is_auto_invest_operation(change: RawAccountChange) -> bool:
    return change.operation == Operation.AUTO_INVEST


def is_auto_invest_spend(change: RawAccountChange) -> bool:
    return (change.operation == Operation.AUTO_INVEST
            and is_usd_like(change.asset) and change.amount < ZERO)


def is_auto_invest_acquire(change: RawAccountChange) -> bool:
    return (change.operation == Operation.AUTO_INVEST
            and not is_usd_like(change.asset) and change.amount > ZERO)


def group_transactions_by_timestamp(changes: List[RawAccountChange]) -> List[Transaction]:
    """
    Group raw changes into transactions.

    Consecutive changes with the same timestamp form one transaction.
    Auto-invest legs are wrapped as AUTO_INVEST transactions and linked to the
    auto-invest subscription in force, even though the spend (USD) and the
    acquisitions (coins) happen at different timestamps.

    Args:
        changes: Raw account changes, ordered by timestamp.

    Returns:
        Transactions ordered by timestamp, not yet classified.
    """
    transactions: List[Transaction] = []
    state = _AutoInvestState()
    last_time: Optional[int] = None

    for change in changes:
        if last_time is None or last_time != change.utc_time:
            transactions.append(Transaction(change.utc_time))
        if is_auto_invest_operation(change):
            _update_auto_invest(change, transactions, state)
        transactions[-1] = transactions[-1].append(change)
        last_time = change.utc_time

    _close_group(state)
    return transactions


def _update_auto_invest(change: RawAccountChange, transactions: List[Transaction],
                        state: _AutoInvestState) -> None:
    if is_auto_invest_spend(change):
        if _is_new_subscription(transactions, state):
            state.subscription = AutoInvestSubscription(
                _first_cached_timestamp_or(transactions, state, transactions[-1].utc_time),
                -change.amount
            )
            logger.debug(f"New auto-invest subscription: {state.subscription}")
            for index in state.current_group:
                transactions[index] = transactions[index].with_subscription(state.subscription)
        _close_group(state)
        state.previous_group = state.current_group
        state.current_group = []
    elif not is_auto_invest_acquire(change):
        raise InconsistentTransactionError(f"Auto-invest but neither invest, nor acquire: {change}")

    last_index = len(transactions) - 1
    if transactions[last_index].type != TransactionType.AUTO_INVEST:
        transactions[last_index] = transactions[last_index].with_subscription(state.subscription)
        state.current_group.append(last_index)

    if not is_usd_like(change.asset) and change.asset not in state.current_assets:
        state.current_assets.append(change.asset)


def _close_group(state: _AutoInvestState) -> None:
    """The assets bought in the finished group become part of the subscription it belongs to."""
    if state.subscription is not None:
        for asset in state.current_assets:
            state.subscription.register_acquired_asset(asset)
    state.current_assets = []


def _first_cached_timestamp_or(transactions: List[Transaction], state: _AutoInvestState,
                               default: int) -> int:
    if state.current_group:
        return transactions[state.current_group[0]].utc_time
    return default


def _is_new_subscription(transactions: List[Transaction], state: _AutoInvestState) -> bool:
    """
    True when the group just finished differs from the one before it:
    other coins were bought, or another USD amount was spent.
    """
    if state.subscription is None:
        return True
    if not state.previous_group:
        return False
    previous = _coins_for_comparison(transactions, state.previous_group)
    current = _coins_for_comparison(transactions, state.current_group)
    return previous != current


def _coins_for_comparison(transactions: List[Transaction], group: List[int]) -> Set[str]:
    coins: Set[str] = set()
    for index in group:
        t = transactions[index]
        bought = t.get_bought_assets()
        if bought:
            coins.update(bought)
        elif t.get_invested_asset() is not None:
            # The spend leg: include the invested USD amount
            coins.add(f"{nice_string(t.get_invested_amount())} {t.get_invested_asset()}")
    return coins
