import requests
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from pnl_report.config.logging import logger
from pnl_report.core.assets import REFERENCE_CURRENCY
from pnl_report.core.exceptions import DataSourceError
from pnl_report.utils.time_converter import get_day_start, utc_time_to_date_string
from .mapper import BinanceMapper

class BinanceApiClient:
    """
    Binance public market-data client.
    Looks up daily candle close prices, used when extra info lacks a price.
    """

    def __init__(self, base_url: str = "https://api.binance.com", timeout: int = 10):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._cache: Dict[Tuple[str, int], Optional[Decimal]] = {}

    def _request(self, method: str, endpoint: str, params: Optional[Dict] = None) -> Any:
        url = f"{self.base_url}{endpoint}"
        try:
            response = requests.request(method, url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.HTTPError as e:
            # An unknown trading pair is answered with HTTP 400
            if e.response is not None and e.response.status_code == 400:
                logger.warning(f"Binance rejected request {endpoint} {params}: {e.response.text}")
                return None
            logger.error(f"Binance API Error: {e}")
            raise DataSourceError(f"Binance API error: {e}")
        except requests.exceptions.RequestException as e:
            logger.error(f"Binance Connection Error: {e}")
            raise DataSourceError(f"Failed to connect to Binance: {e}")

    def get_daily_close_price(self, asset: str, timestamp: int) -> Optional[Decimal]:
        """
        Close price of <asset>USDT for the UTC day containing `timestamp`.
        Returns None when Binance has no such market or no candle for that day.
        """
        day_start = get_day_start(timestamp)
        key = (asset, day_start)
        if key in self._cache:
            return self._cache[key]

        params = {
            "symbol": f"{asset}{REFERENCE_CURRENCY}",
            "interval": "1d",
            "startTime": day_start,
            "limit": 1,
        }
        klines: Optional[List[List[Any]]] = self._request("GET", "/api/v3/klines", params)
        price = BinanceMapper.kline_to_close_price(klines, day_start)
        if price is not None:
            logger.info(f"{asset} price on {utc_time_to_date_string(day_start)}: {price} (Binance)")
        self._cache[key] = price
        return price
