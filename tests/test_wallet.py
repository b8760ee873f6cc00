import pytest
from decimal import Decimal

from pnl_report.core.exceptions import InvalidArgumentError
from pnl_report.core.snapshot import WalletSnapshot
from pnl_report.core.wallet import Wallet, WalletDiff


def test_weighted_average_on_add():
    wallet = Wallet()
    wallet.add_asset("BTC", Decimal("1"), Decimal("100"))
    wallet.add_asset("BTC", Decimal("1"), Decimal("200"))
    assert wallet.get_asset_amount("BTC") == Decimal("2")
    assert wallet.get_avg_obtain_price("BTC") == Decimal("150")

def test_decrease_keeps_avg_price():
    wallet = Wallet()
    wallet.add_asset("BTC", Decimal("2"), Decimal("150"))
    wallet.decrease_asset("BTC", Decimal("0.5"))
    assert wallet.get_asset_amount("BTC") == Decimal("1.5")
    assert wallet.get_avg_obtain_price("BTC") == Decimal("150")

def test_decrease_below_zero_goes_negative():
    wallet = Wallet()
    wallet.decrease_asset("USDT", Decimal("100"))
    assert wallet.get_asset_amount("USDT") == Decimal("-100")

def test_add_after_negative_balance_takes_new_price():
    wallet = Wallet()
    wallet.decrease_asset("USDT", Decimal("100"))
    wallet.add_asset("USDT", Decimal("150"), Decimal("1"))
    assert wallet.get_asset_amount("USDT") == Decimal("50")
    assert wallet.get_avg_obtain_price("USDT") == Decimal("1")

def test_negative_amounts_rejected():
    wallet = Wallet()
    with pytest.raises(InvalidArgumentError):
        wallet.add_asset("BTC", Decimal("-1"), Decimal("100"))
    with pytest.raises(InvalidArgumentError):
        wallet.decrease_asset("BTC", Decimal("-1"))

def test_unknown_asset():
    wallet = Wallet()
    assert wallet.get_asset_amount("ETH") == Decimal("0")
    assert wallet.get_avg_obtain_price("ETH") == Decimal("0")
    assert "ETH" not in wallet

def test_diff_ignores_zero_changes():
    old = Wallet()
    old.add_asset("BTC", Decimal("1"), Decimal("100"))
    new = old.copy()
    new.add_asset("ETH", Decimal("2"), Decimal("50"))
    assert new.get_diff_from(old) == WalletDiff().add("ETH", Decimal("2")).add("BTC", Decimal("0"))

def test_snapshot_copy_does_not_touch_previous():
    previous = WalletSnapshot.create_empty()
    previous.add_asset("BTC", Decimal("1"), Decimal("100"))
    new = previous.prepare_for_transaction(None)
    new.add_asset("BTC", Decimal("1"), Decimal("300"))
    new.add_pnl(Decimal("5"))
    assert previous.wallet.get_asset_amount("BTC") == Decimal("1")
    assert previous.get_avg_obtain_price("BTC") == Decimal("100")
    assert previous.pnl == Decimal("0")
    assert new.get_avg_obtain_price("BTC") == Decimal("200")
