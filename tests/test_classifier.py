import pytest
from decimal import Decimal

from pnl_report.core.exceptions import UnknownTransactionError
from pnl_report.core.models import AccountType, Operation
from pnl_report.core.transaction import Transaction, TransactionType
from pnl_report.services.classifier import clarify_transaction_type, clarify_transaction_types
from builders import T0, change, transaction_of


def test_buy():
    t = transaction_of(
        change(Operation.BUY, "BTC", "0.01"),
        change(Operation.TRANSACTION_RELATED, "USDT", "-200"),
        change(Operation.FEE, "BNB", "-0.0001"),
    )
    assert t.type == TransactionType.BUY
    assert (t.base_currency, t.base_amount) == ("BTC", Decimal("0.01"))
    assert (t.quote_currency, t.quote_amount) == ("USDT", Decimal("-200"))
    assert (t.fee_currency, t.fee) == ("BNB", Decimal("-0.0001"))

def test_sell_yields_usd():
    t = transaction_of(
        change(Operation.TRANSACTION_SOLD, "BTC", "-0.01"),
        change(Operation.TRANSACTION_REVENUE, "BUSD", "210"),
    )
    assert t.type == TransactionType.SELL
    assert (t.base_currency, t.base_amount) == ("BTC", Decimal("-0.01"))
    assert (t.quote_currency, t.quote_amount) == ("BUSD", Decimal("210"))
    assert t.fee is None

def test_coin_to_coin():
    t = transaction_of(
        change(Operation.BINANCE_CONVERT, "ETH", "0.5"),
        change(Operation.BINANCE_CONVERT, "BTC", "-0.03"),
    )
    assert t.type == TransactionType.COIN_TO_COIN
    assert t.base_currency == "ETH"
    assert t.quote_currency == "BTC"

def test_partial_fills_are_merged():
    t = transaction_of(
        change(Operation.BUY, "BTC", "0.004"),
        change(Operation.TRANSACTION_RELATED, "USDT", "-80"),
        change(Operation.BUY, "BTC", "0.006"),
        change(Operation.TRANSACTION_RELATED, "USDT", "-120"),
        change(Operation.FEE, "BTC", "-0.000004"),
        change(Operation.FEE, "BTC", "-0.000006"),
    )
    assert t.type == TransactionType.BUY
    assert t.base_amount == Decimal("0.010")
    assert t.quote_amount == Decimal("-200")
    assert t.fee == Decimal("-0.000010")
    assert len(t.changes) == 6

def test_deposit_and_withdraw():
    deposit = transaction_of(change(Operation.DEPOSIT, "BTC", "1"))
    withdraw = transaction_of(change(Operation.WITHDRAW, "BTC", "-1"))
    assert deposit.type == TransactionType.DEPOSIT
    assert withdraw.type == TransactionType.WITHDRAW
    assert withdraw.base_amount == Decimal("-1")

def test_savings_and_income():
    subscription = transaction_of(
        change(Operation.SAVINGS_SUBSCRIPTION, "USDT", "-10"),
        change(Operation.SAVINGS_SUBSCRIPTION, "LDUSDT", "10", account=AccountType.EARN),
    )
    interest = transaction_of(change(Operation.SAVINGS_INTEREST, "BTC", "0.0001"))
    airdrop = transaction_of(change(Operation.DISTRIBUTION, "ETHW", "2"))
    assert subscription.type == TransactionType.SAVINGS_SUBSCRIPTION
    assert interest.type == TransactionType.SAVINGS_INTEREST
    assert airdrop.type == TransactionType.DISTRIBUTION

def test_unknown_shape_returns_none():
    t = Transaction(T0).append(change(Operation.DEPOSIT, "BTC", "1")).append(
        change(Operation.WITHDRAW, "ETH", "-1"))
    assert clarify_transaction_type(t) is None

def test_unknown_transaction_aborts_with_operations():
    t = Transaction(T0)
    for c in (change(Operation.BUY, "BTC", "1"), change(Operation.BUY, "ETH", "1"),
              change(Operation.SELL, "USDT", "-100")):
        t = t.append(c)
    with pytest.raises(UnknownTransactionError) as e:
        clarify_transaction_types([t])
    assert e.value.operations == {"Buy": 2, "Sell": 1}

def test_classification_returns_new_instance():
    raw = Transaction(T0).append(change(Operation.DEPOSIT, "BTC", "1"))
    clarified = clarify_transaction_type(raw)
    assert raw.type == TransactionType.UNKNOWN
    assert clarified.type == TransactionType.DEPOSIT
    assert clarified.changes == raw.changes
