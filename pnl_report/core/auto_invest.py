from decimal import Decimal
from typing import Dict, List, Optional

from pnl_report.core.decimals import ONE, ZERO, nice_string
from pnl_report.core.exceptions import InvalidArgumentError
from pnl_report.utils.time_converter import utc_time_to_string


class AutoInvestSubscription:
    """
    One auto-invest plan in force from `utc_time`: every occurrence spends
    `investment_amount` USD, split between assets by their proportions.
    Proportions must sum to exactly 1 before the plan can price anything.
    """

    def __init__(self, utc_time: int, investment_amount: Optional[Decimal]):
        if investment_amount is None:
            raise InvalidArgumentError("Auto-invest subscription needs an investment amount")
        if investment_amount <= ZERO:
            raise InvalidArgumentError(f"Investment amount must be positive: {investment_amount}")
        self.utc_time = utc_time
        self.investment_amount = investment_amount
        self._proportions: Dict[str, Decimal] = {}
        self._acquired_assets: List[str] = []

    def add_asset_proportion(self, asset: str, proportion: Decimal) -> None:
        if asset in self._proportions:
            raise InvalidArgumentError(f"Proportion for {asset} already registered")
        self._proportions[asset] = proportion

    def has_proportions(self) -> bool:
        return bool(self._proportions)

    def is_valid(self) -> bool:
        return bool(self._proportions) and sum(self._proportions.values(), ZERO) == ONE

    def get_investment_for_asset(self, asset: str) -> Decimal:
        """
        USD amount invested in the given asset on each occurrence.

        Raises:
            InvalidArgumentError: when proportions are missing or do not sum to 1,
                or the asset is not part of the plan.
        """
        if not self.is_valid():
            raise InvalidArgumentError(f"Invalid auto-invest subscription {self}: proportions must sum to 1")
        proportion = self._proportions.get(asset)
        if proportion is None:
            raise InvalidArgumentError(f"{asset} is not part of auto-invest subscription {self}")
        return self.investment_amount * proportion

    def register_acquired_asset(self, asset: str) -> None:
        if asset not in self._acquired_assets:
            self._acquired_assets.append(asset)

    @property
    def acquired_assets(self) -> List[str]:
        return list(self._acquired_assets)

    def __repr__(self) -> str:
        return (f"AutoInvestSubscription({nice_string(self.investment_amount)} USD "
                f"@ {utc_time_to_string(self.utc_time)}, {self._acquired_assets})")
