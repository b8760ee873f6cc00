import copy
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterator

from pnl_report.core.decimals import ZERO, divide, nice_string
from pnl_report.core.exceptions import InvalidArgumentError


@dataclass
class AssetBalance:
    amount: Decimal
    avg_obtain_price: Decimal   # in USDT, weighted average over all additions


class WalletDiff:
    """Change of amount per asset. Assets with zero change are ignored."""

    def __init__(self):
        self._changes: Dict[str, Decimal] = {}

    def add(self, asset: str, amount: Decimal) -> "WalletDiff":
        self._changes[asset] = self._changes.get(asset, ZERO) + amount
        return self

    def get(self, asset: str) -> Decimal:
        return self._changes.get(asset, ZERO)

    def _non_zero(self) -> Dict[str, Decimal]:
        return {asset: amount for asset, amount in self._changes.items() if amount != ZERO}

    def __eq__(self, other) -> bool:
        if not isinstance(other, WalletDiff):
            return NotImplemented
        return self._non_zero() == other._non_zero()

    def __repr__(self) -> str:
        parts = [f"{nice_string(amount)} {asset}" for asset, amount in sorted(self._non_zero().items())]
        return "[" + ", ".join(parts) + "]"


class Wallet:
    """
    Asset symbol -> held amount and average obtain price.
    Additions re-price the asset with a weighted average, decreases keep the price.
    """

    def __init__(self):
        self._assets: Dict[str, AssetBalance] = {}

    def copy(self) -> "Wallet":
        return copy.deepcopy(self)

    def add_asset(self, asset: str, amount: Decimal, obtain_price: Decimal) -> None:
        if amount < ZERO:
            raise InvalidArgumentError(f"Can't add a negative amount of {asset}: {amount}")
        if amount == ZERO:
            return
        current = self._assets.get(asset)
        if current is None or current.amount <= ZERO:
            # Nothing held (or the balance went negative): the new price takes over
            held = current.amount if current is not None else ZERO
            self._assets[asset] = AssetBalance(held + amount, obtain_price)
            return
        new_amount = current.amount + amount
        total_cost = current.amount * current.avg_obtain_price + amount * obtain_price
        self._assets[asset] = AssetBalance(new_amount, divide(total_cost, new_amount))

    def decrease_asset(self, asset: str, amount: Decimal) -> None:
        if amount < ZERO:
            raise InvalidArgumentError(f"Can't decrease {asset} by a negative amount: {amount}")
        current = self._assets.get(asset)
        if current is None:
            current = AssetBalance(ZERO, ZERO)
        self._assets[asset] = AssetBalance(current.amount - amount, current.avg_obtain_price)

    def get_asset_amount(self, asset: str) -> Decimal:
        balance = self._assets.get(asset)
        return balance.amount if balance is not None else ZERO

    def get_avg_obtain_price(self, asset: str) -> Decimal:
        balance = self._assets.get(asset)
        return balance.avg_obtain_price if balance is not None else ZERO

    def get_asset_count(self) -> int:
        return len(self._assets)

    def get_diff_from(self, other: "Wallet") -> WalletDiff:
        diff = WalletDiff()
        for asset in set(self._assets) | set(other._assets):
            diff.add(asset, self.get_asset_amount(asset) - other.get_asset_amount(asset))
        return diff

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._assets))

    def __contains__(self, asset: str) -> bool:
        return asset in self._assets

    def __eq__(self, other) -> bool:
        if not isinstance(other, Wallet):
            return NotImplemented
        return self._assets == other._assets

    def __repr__(self) -> str:
        parts = [f"{nice_string(b.amount)} {asset} @ {nice_string(b.avg_obtain_price)}"
                 for asset, b in sorted(self._assets.items())]
        return "Wallet{" + ", ".join(parts) + "}"
