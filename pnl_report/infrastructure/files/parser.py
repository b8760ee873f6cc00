import os
from typing import List

import pandas as pd

from pnl_report.config.logging import logger
from pnl_report.core.decimals import to_decimal
from pnl_report.core.exceptions import DataSourceError
from pnl_report.core.extra_info import ExtraInfo
from pnl_report.core.models import (
    AccountType, ExtraInfoEntry, ExtraInfoType, Operation, RawAccountChange,
)
from pnl_report.utils.time_converter import string_to_utc_timestamp

COMMENT_CHARACTER = "#"

STATEMENT_COLUMNS = ["UTC_Time", "Account", "Operation", "Coin", "Change"]
EXTRA_INFO_COLUMNS = ["Unix timestamp", "UTC time", "Type", "Asset", "Value"]


def _read_csv(path: str, required_columns: List[str]) -> pd.DataFrame:
    """Read a CSV file as strings. Rows starting with '#' are skipped (and logged)."""
    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False, skipinitialspace=True)
    except FileNotFoundError:
        raise DataSourceError(f"File not found: {path}")
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise DataSourceError(f"Failed to read CSV file {path}: {e}")

    df.columns = [str(c).strip() for c in df.columns]
    missing = [c for c in required_columns if c not in df.columns]
    if missing:
        raise DataSourceError(f"Missing columns in {path}: {', '.join(missing)}")

    if len(df.columns) > 0 and not df.empty:
        commented = df[df.iloc[:, 0].str.startswith(COMMENT_CHARACTER)]
        for _, row in commented.iterrows():
            logger.warning(f"Commented out row: {','.join(row.values)}")
        df = df.drop(commented.index)
    return df


def parse_account_change(row) -> RawAccountChange:
    try:
        utc_time = string_to_utc_timestamp(row["UTC_Time"])
    except ValueError as e:
        raise DataSourceError(str(e))
    return RawAccountChange(
        utc_time=utc_time,
        account=AccountType.from_string(row["Account"]),
        operation=Operation.from_string(row["Operation"]),
        asset=row["Coin"].strip(),
        amount=to_decimal(row["Change"]),
        remark=row.get("Remark", ""),
    )


def read_account_changes(path: str) -> List[RawAccountChange]:
    """
    Parse a Binance transaction statement CSV.

    Returns:
        Raw account changes ordered by time (rows with equal time keep file order).

    Raises:
        DataSourceError: when the file is missing or any row is malformed.
    """
    df = _read_csv(path, STATEMENT_COLUMNS)
    changes = [parse_account_change(row) for _, row in df.iterrows()]
    logger.info(f"Read {len(changes)} account changes from {path}")
    return sorted(changes, key=lambda c: c.utc_time)


def parse_extra_info_entry(row) -> ExtraInfoEntry:
    try:
        timestamp = int(row["Unix timestamp"])
    except ValueError:
        raise DataSourceError(f"Invalid number format: {row['Unix timestamp']}")
    asset = row["Asset"].strip() or None
    return ExtraInfoEntry(timestamp, ExtraInfoType.from_string(row["Type"]), asset, row["Value"].strip())


def read_extra_info(path: str) -> ExtraInfo:
    """Read the user's extra info file. A file that does not exist yet is treated as empty."""
    if not os.path.exists(path):
        logger.warning(f"Extra info file {path} not found, starting without extra info")
        return ExtraInfo()
    df = _read_csv(path, EXTRA_INFO_COLUMNS)
    extra_info = ExtraInfo([parse_extra_info_entry(row) for _, row in df.iterrows()])
    logger.info(f"Read {len(extra_info)} extra info entries from {path}")
    return extra_info
