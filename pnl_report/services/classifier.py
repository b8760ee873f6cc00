from dataclasses import replace
from decimal import Decimal
from typing import List, Optional

from pnl_report.config.logging import logger
from pnl_report.core.assets import REFERENCE_CURRENCY, is_usd_like
from pnl_report.core.decimals import ZERO
from pnl_report.core.exceptions import UnknownTransactionError
from pnl_report.core.models import (
    FEE_OPERATIONS, INCOME_OPERATIONS, TRADE_OPERATIONS, Operation, RawAccountChange,
)
from pnl_report.core.transaction import Transaction, TransactionType


def clarify_transaction_types(raw_transactions: List[Transaction]) -> List[Transaction]:
    """
    Decide the type of each transaction from its raw changes: Deposit, Buy,
    Savings interest, etc.

    Raises:
        UnknownTransactionError: for the first transaction that matches no known shape.
    """
    transactions = []
    for raw in raw_transactions:
        transaction = clarify_transaction_type(raw)
        if transaction is None:
            operations = raw.get_operation_multiset()
            logger.error(f"Unknown transaction: {raw} {operations}")
            raise UnknownTransactionError(f"Unknown transaction: {raw} {operations}", operations)
        transactions.append(transaction)
    return transactions


def clarify_transaction_type(transaction: Transaction) -> Optional[Transaction]:
    """The same transaction re-created with a concrete type, or None if the shape is unknown."""
    if not transaction.changes:
        return None
    if transaction.type == TransactionType.AUTO_INVEST:
        return _clarify_auto_invest(transaction)

    merged = transaction.get_merged_changes()
    operations = {change.operation for change in merged}

    if operations == {Operation.SAVINGS_SUBSCRIPTION}:
        return _with_single_asset(transaction, TransactionType.SAVINGS_SUBSCRIPTION, merged)
    if operations == {Operation.SAVINGS_REDEMPTION}:
        return _with_single_asset(transaction, TransactionType.SAVINGS_REDEMPTION, merged)
    if operations == {Operation.SAVINGS_INTEREST} and _all_positive(merged):
        return _with_single_asset(transaction, TransactionType.SAVINGS_INTEREST, merged)
    if operations <= INCOME_OPERATIONS and _all_positive(merged):
        return _with_single_asset(transaction, TransactionType.DISTRIBUTION, merged)
    if operations == {Operation.DEPOSIT} and len(merged) == 1 and merged[0].amount > ZERO:
        return _with_single_asset(transaction, TransactionType.DEPOSIT, merged)
    if operations == {Operation.WITHDRAW} and len(merged) == 1 and merged[0].amount < ZERO:
        return _with_single_asset(transaction, TransactionType.WITHDRAW, merged)
    if operations <= (TRADE_OPERATIONS | FEE_OPERATIONS):
        return _clarify_trade(transaction)
    return None


def _all_positive(changes: List[RawAccountChange]) -> bool:
    return all(change.amount > ZERO for change in changes)


def _with_single_asset(transaction: Transaction, transaction_type: TransactionType,
                       merged: List[RawAccountChange]) -> Transaction:
    first = merged[0]
    return replace(transaction, type=transaction_type,
                   base_currency=first.asset, base_amount=first.amount)


def _clarify_trade(transaction: Transaction) -> Optional[Transaction]:
    """
    One BUY-type leg (received) and one SELL-type leg (given away), optionally one fee leg.
    Only trades which yield a USD-like asset are sells: PNL is realized against USD only.
    """
    buys = transaction.get_buy_type_changes()
    sells = transaction.get_sell_type_changes()
    fees = transaction.get_fee_changes()
    if len(buys) != 1 or len(sells) != 1 or len(fees) > 1:
        return None
    received = buys[0]
    given = sells[0]
    fee_currency: Optional[str] = fees[0].asset if fees else None
    fee: Optional[Decimal] = fees[0].amount if fees else None

    if is_usd_like(given.asset):
        return replace(transaction, type=TransactionType.BUY,
                       base_currency=received.asset, base_amount=received.amount,
                       quote_currency=given.asset, quote_amount=given.amount,
                       fee_currency=fee_currency, fee=fee)
    if is_usd_like(received.asset):
        return replace(transaction, type=TransactionType.SELL,
                       base_currency=given.asset, base_amount=given.amount,
                       quote_currency=received.asset, quote_amount=received.amount,
                       fee_currency=fee_currency, fee=fee)
    return replace(transaction, type=TransactionType.COIN_TO_COIN,
                   base_currency=received.asset, base_amount=received.amount,
                   quote_currency=given.asset, quote_amount=given.amount,
                   fee_currency=fee_currency, fee=fee)


def _clarify_auto_invest(transaction: Transaction) -> Optional[Transaction]:
    """Passthrough which fills in the legs: spend leg (USD) or acquire leg (coin)."""
    if any(change.operation != Operation.AUTO_INVEST for change in transaction.changes):
        return None
    acquired = transaction.get_acquire_changes()
    if acquired:
        return replace(transaction, base_currency=acquired[0].asset, base_amount=acquired[0].amount,
                       quote_currency=REFERENCE_CURRENCY)
    spent = transaction.get_spend_changes()
    if spent:
        return replace(transaction, quote_currency=spent[0].asset, quote_amount=spent[0].amount)
    return None
