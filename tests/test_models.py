import pytest
from decimal import Decimal

from pnl_report.core.exceptions import DataSourceError, InvalidArgumentError
from pnl_report.core.models import AccountType, ExtraInfoType, Operation, RawAccountChange
from builders import T0, change


def test_merge_one():
    original = change(Operation.BUY, "BTC", "1")
    assert RawAccountChange.merge([original]) == original

def test_merge_sums_amounts():
    changes = [change(Operation.BUY, "BTC", a) for a in ("0.1", "0.2", "0.3", "0.4")]
    merged = RawAccountChange.merge(changes)
    assert merged == change(Operation.BUY, "BTC", "1.0")
    assert merged.amount == Decimal("1")

def test_merge_negative():
    changes = [change(Operation.BUY, "BTC", "0.1"), change(Operation.BUY, "BTC", "-0.2")]
    assert RawAccountChange.merge(changes).amount == Decimal("-0.1")

    changes += [change(Operation.BUY, "BTC", "0.5"), change(Operation.BUY, "BTC", "-0.1")]
    assert RawAccountChange.merge(changes).amount == Decimal("0.3")

def test_merge_different_operations_fails():
    changes = [change(Operation.BUY, "BTC", "1"), change(Operation.BUY, "BTC", "1"),
               change(Operation.SELL, "BTC", "1")]
    with pytest.raises(InvalidArgumentError):
        RawAccountChange.merge(changes)

def test_merge_different_assets_fails():
    changes = [change(Operation.BUY, "LTC", "1"), change(Operation.BUY, "BTC", "1")]
    with pytest.raises(InvalidArgumentError):
        RawAccountChange.merge(changes)

def test_merge_different_timestamps_fails():
    changes = [change(Operation.BUY, "BTC", "1"), change(Operation.BUY, "BTC", "1", T0 + 1000)]
    with pytest.raises(InvalidArgumentError):
        RawAccountChange.merge(changes)

def test_merge_empty_or_none_fails():
    with pytest.raises(InvalidArgumentError):
        RawAccountChange.merge([])
    with pytest.raises(ValueError):
        RawAccountChange.merge(None)

def test_with_asset_keeps_other_fields():
    original = change(Operation.DEPOSIT, "LDBTC", "2")
    renamed = original.with_asset("BTC")
    assert renamed.asset == "BTC"
    assert renamed.amount == original.amount
    assert original.asset == "LDBTC"

def test_operation_from_statement_strings():
    assert Operation.from_string("Transaction Spend") == Operation.TRANSACTION_SPEND
    assert Operation.from_string(" deposit ") == Operation.DEPOSIT
    assert Operation.from_string("Savings purchase") == Operation.SAVINGS_SUBSCRIPTION
    assert Operation.from_string("Auto-Invest Transaction") == Operation.AUTO_INVEST

def test_invalid_enum_strings():
    with pytest.raises(DataSourceError):
        Operation.from_string("Teleport")
    with pytest.raises(DataSourceError):
        AccountType.from_string("Margin")
    with pytest.raises(DataSourceError):
        ExtraInfoType.from_string("PRICE")

def test_account_type_from_string():
    assert AccountType.from_string("Spot") == AccountType.SPOT
    assert AccountType.from_string("Earn") == AccountType.EARN
