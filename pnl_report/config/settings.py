import sys
from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    """
    Application-wide settings.
    Read from environment variables (.env) and validated by type.
    """
    # Reporting
    HOME_CURRENCY: str = "NOK"
    # "zero" - deposits arrive at zero cost; "extra_info" - an ASSET_PRICE entry is required
    DEPOSIT_COST_BASIS: str = "zero"

    # Binance price lookup
    PRICE_LOOKUP_ENABLED: bool = True
    BINANCE_API_URL: str = "https://api.binance.com"
    BINANCE_TIMEOUT_SECONDS: int = 10

    # Output files
    TRANSACTION_LOG_FILE: str = "transactions.csv"
    ANNUAL_REPORT_FILE: str = "annual_report.csv"
    EXTRA_INFO_HINT_FILE: str = "extra_info_hints.csv"
    CSV_DECIMAL_COMMA: bool = False

    # Application behaviour
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

# Singleton Instance
try:
    settings = Settings()
except Exception as e:
    # logging depends on settings, so report the problem on stderr directly
    print(f"CRITICAL: Failed to load configuration. Invalid env vars? {e}", file=sys.stderr)
    settings = None
