from decimal import Decimal
from typing import Dict, Iterator, List, Optional

from pnl_report.core.decimals import to_decimal
from pnl_report.core.models import ExtraInfoEntry, ExtraInfoType


class ExtraInfo:
    """
    User-provided information keyed by timestamp: asset prices, home-currency
    exchange rates and auto-invest proportions.
    The only change made during a run is appending prices found through the price API.
    """

    def __init__(self, entries: Optional[List[ExtraInfoEntry]] = None):
        self._by_time: Dict[int, List[ExtraInfoEntry]] = {}
        self._all: List[ExtraInfoEntry] = []
        for entry in entries or []:
            self.add(entry)

    def add(self, entry: ExtraInfoEntry) -> None:
        self._by_time.setdefault(entry.utc_timestamp, []).append(entry)
        self._all.append(entry)

    def is_empty(self) -> bool:
        return not self._all

    def get_all_entries(self) -> List[ExtraInfoEntry]:
        """All entries, ordered by timestamp (insertion order within one timestamp)."""
        return sorted(self._all, key=lambda e: e.utc_timestamp)

    def __iter__(self) -> Iterator[ExtraInfoEntry]:
        return iter(self.get_all_entries())

    def __len__(self) -> int:
        return len(self._all)

    def contains(self, entry: ExtraInfoEntry) -> bool:
        """True if an entry with the same timestamp and type (and asset, for prices) is stored."""
        for existing in self._by_time.get(entry.utc_timestamp, []):
            if existing.type != entry.type:
                continue
            if entry.type != ExtraInfoType.ASSET_PRICE or existing.asset == entry.asset:
                return True
        return False

    def get_at_time(self, utc_time: int,
                    info_type: Optional[ExtraInfoType] = None) -> Optional[ExtraInfoEntry]:
        """
        The first entry stored at the given time, optionally only of the given type.
        Returns None if there is none.
        """
        for entry in self._by_time.get(utc_time, []):
            if info_type is None or entry.type == info_type:
                return entry
        return None

    def get_asset_price_entry(self, utc_time: int, asset: str) -> Optional[ExtraInfoEntry]:
        """The ASSET_PRICE entry for this asset at the given time. Prices of other assets never match."""
        for entry in self._by_time.get(utc_time, []):
            if entry.type == ExtraInfoType.ASSET_PRICE and entry.asset == asset:
                return entry
        return None

    def get_asset_price_at_time(self, utc_time: int, asset: str) -> Optional[Decimal]:
        entry = self.get_asset_price_entry(utc_time, asset)
        return to_decimal(entry.value) if entry is not None else None
