import pytest
from decimal import Decimal

from pnl_report.core.exceptions import InconsistentTransactionError
from pnl_report.core.models import AccountType, Operation
from pnl_report.core.transaction import TransactionType
from pnl_report.services.grouping import group_transactions_by_timestamp, update_lending_assets
from builders import T0, change, create_auto_investments


def expect_same_subscription(transactions):
    subscription = transactions[0].subscription
    assert subscription is not None
    for t in transactions:
        assert t.subscription is subscription

def test_group_by_timestamp():
    changes = [
        change(Operation.BUY, "BTC", "0.1"),
        change(Operation.BUY, "BTC", "0.2"),
        change(Operation.DEPOSIT, "ETH", "1", T0 + 1000),
    ]
    transactions = group_transactions_by_timestamp(changes)
    assert len(transactions) == 2
    assert len(transactions[0].changes) == 2
    assert transactions[1].changes == (changes[2],)

def test_lending_assets_renamed():
    changes = [
        change(Operation.SAVINGS_SUBSCRIPTION, "LDUSDT", "10", account=AccountType.EARN),
        change(Operation.DEPOSIT, "LD", "1"),
        change(Operation.DEPOSIT, "BTC", "1"),
    ]
    assets = [c.asset for c in update_lending_assets(changes)]
    assert assets == ["USDT", "LD", "BTC"]

def test_bought_and_invested_asset():
    invest, acquire = create_auto_investments("-5", "USDT", "0.02", "BNB")
    assert invest.get_bought_assets() == []
    assert acquire.get_bought_assets() == ["BNB"]
    assert invest.get_invested_asset() == "USDT"
    assert acquire.get_invested_asset() is None

def test_clarified_as_auto_invest():
    transactions = create_auto_investments(
        "-5", "USDT",
        "0.00141986", "BNB",
        "0.00018789", "BTC",
        "0.00030772", "ETH",
    )
    assert len(transactions) == 4
    assert all(t.type == TransactionType.AUTO_INVEST for t in transactions)
    assert transactions[0].quote_currency == "USDT"
    assert transactions[0].quote_amount == Decimal("-5")
    assert transactions[1].base_currency == "BNB"
    expect_same_subscription(transactions)
    assert transactions[0].subscription.investment_amount == Decimal("5")
    assert transactions[0].subscription.acquired_assets == ["BNB", "BTC", "ETH"]

def test_two_occurrences_of_same_plan():
    transactions = create_auto_investments(
        "-5", "USDT",
        "0.00141986", "BNB",
        "0.00018789", "BTC",
        "0.00030772", "ETH",
        "-5", "USDT",
        "0.00019", "BTC",
        "0.0014", "BNB",
        "0.0003", "ETH",
    )
    assert len(transactions) == 8
    expect_same_subscription(transactions)

def test_subscription_change_by_assets():
    transactions = create_auto_investments(
        "-5", "USDT",
        "0.00141986", "BNB",
        "0.00018789", "BTC",
        "0.00030772", "ETH",
        "-5", "USDT",
        "0.00019", "BTC",
        "0.0003", "ETH",
        # the change is detected on the third occurrence
        "-5", "USDT",
        "0.00019", "BTC",
        "0.0003", "ETH",
    )
    assert len(transactions) == 10
    assert transactions[0].subscription is not transactions[4].subscription
    expect_same_subscription(transactions[0:4])
    expect_same_subscription(transactions[4:10])
    assert transactions[4].subscription.acquired_assets == ["BTC", "ETH"]

def test_subscription_change_by_usd_amount():
    transactions = create_auto_investments(
        "-5", "USDT",
        "0.00141986", "BNB",
        "0.00018789", "BTC",
        "0.00030772", "ETH",
        "-10", "USDT",
        "0.0028", "BNB",
        "0.0004", "BTC",
        "0.0006", "ETH",
        "-10", "USDT",
        "0.0028", "BNB",
        "0.0004", "BTC",
        "0.0006", "ETH",
    )
    assert len(transactions) == 12
    assert transactions[0].subscription is not transactions[4].subscription
    expect_same_subscription(transactions[0:4])
    expect_same_subscription(transactions[4:12])
    assert transactions[4].subscription.investment_amount == Decimal("10")

def test_subscription_timestamps():
    transactions = create_auto_investments(
        "-5", "USDT",
        "0.001", "BNB",
        "0.0002", "BTC",
        "0.0004", "ETH",
        "-10", "USDT",
        "0.0004", "BTC",
        "0.0008", "ETH",
        "-10", "USDT",
        "0.0005", "BTC",
        "0.001", "ETH",
        "-5", "USDT",
        "0.0002", "BTC",
        "-5", "USDT",
        "0.0002", "BTC",
    )
    for i in (0, 4, 10):
        assert transactions[i].subscription.utc_time == transactions[i].utc_time
    expect_same_subscription(transactions[10:14])

def test_auto_invest_neither_spend_nor_acquire_fails():
    changes = [change(Operation.AUTO_INVEST, "BTC", "-0.1")]
    with pytest.raises(InconsistentTransactionError):
        group_transactions_by_timestamp(changes)
