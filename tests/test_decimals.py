import pytest
from decimal import Decimal

from pnl_report.core.assets import is_usd_like, normalize_lending_asset
from pnl_report.core.decimals import divide, nice_string, to_decimal
from pnl_report.core.exceptions import DataSourceError


def test_divide_rounds_half_up_to_eight_places():
    assert divide(Decimal("2"), Decimal("3")) == Decimal("0.66666667")
    assert divide(Decimal("1"), Decimal("8")) == Decimal("0.125")
    with pytest.raises(ZeroDivisionError):
        divide(Decimal("1"), Decimal("0"))

def test_to_decimal():
    assert to_decimal(" 0.00141986 ") == Decimal("0.00141986")
    assert to_decimal(5) == Decimal("5")
    for bad in ("abc", "", None, "NaN", "Infinity"):
        with pytest.raises(DataSourceError):
            to_decimal(bad)

def test_nice_string():
    assert nice_string(Decimal("1.500")) == "1.5"
    assert nice_string(Decimal("1E+2")) == "100"
    assert nice_string(Decimal("0.00000000")) == "0"
    assert nice_string(Decimal("-0.00018789")) == "-0.00018789"

def test_assets():
    assert is_usd_like("BUSD")
    assert not is_usd_like("BTC")
    assert normalize_lending_asset("LDBTC") == "BTC"
    assert normalize_lending_asset("LDUSDT") == "USDT"
    assert normalize_lending_asset("BTC") == "BTC"
