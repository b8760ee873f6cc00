from typing import Any, Dict, Iterable, List

import pandas as pd

from pnl_report.config.logging import logger
from pnl_report.core.exceptions import DataDestinationError
from pnl_report.core.models import AnnualReport, ExtraInfoEntry
from pnl_report.services.report import Report
from .mapper import (
    ANNUAL_REPORT_COLUMNS, EXTRA_INFO_COLUMNS, TRANSACTION_LOG_COLUMNS, ReportMapper,
)


def _write_csv(path: str, columns: List[str], rows: Iterable[Dict[str, Any]], separator: str = ",") -> None:
    df = pd.DataFrame(list(rows), columns=columns)
    try:
        df.to_csv(path, index=False, sep=separator)
    except OSError as e:
        logger.error(f"Failed to write {path}: {e}")
        raise DataDestinationError(f"Failed to write {path}: {e}")
    logger.info(f"Wrote {len(df)} rows to {path}")


class ReportFileWriter:
    """
    Writes the report outputs as CSV files.
    With decimal_comma, columns are separated by ';' and decimals use ','.
    """

    def __init__(self, decimal_comma: bool = False):
        self.mapper = ReportMapper(decimal_comma)
        self.separator = ";" if decimal_comma else ","

    def write_transaction_log(self, report: Report, path: str) -> None:
        rows = (self.mapper.snapshot_to_row(snapshot) for snapshot in report)
        _write_csv(path, TRANSACTION_LOG_COLUMNS, rows, self.separator)

    def write_annual_reports(self, annual_reports: List[AnnualReport], path: str) -> None:
        rows = (self.mapper.annual_report_to_row(r) for r in annual_reports)
        _write_csv(path, ANNUAL_REPORT_COLUMNS, rows, self.separator)


def write_extra_info(entries: Iterable[ExtraInfoEntry], path: str) -> None:
    """Extra info and extra info hints, in the format read by read_extra_info."""
    rows = (ReportMapper.extra_info_to_row(e) for e in sorted(entries, key=lambda e: e.utc_timestamp))
    _write_csv(path, EXTRA_INFO_COLUMNS, rows)
