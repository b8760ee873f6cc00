from decimal import Decimal
from typing import Any, List, Optional

class BinanceMapper:
    """
    Converts raw Binance API JSON into domain values.
    """

    @staticmethod
    def kline_to_close_price(klines: Optional[List[List[Any]]], day_start: int) -> Optional[Decimal]:
        """
        Kline format: [open time, open, high, low, close, volume, close time, ...].
        Only a candle opening exactly at `day_start` is accepted.
        """
        if not klines:
            return None
        kline = klines[0]
        if len(kline) < 5 or int(kline[0]) != day_start:
            return None
        return Decimal(str(kline[4]))
