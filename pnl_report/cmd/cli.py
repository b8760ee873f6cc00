import argparse
import sys
from pnl_report.config.settings import settings
from pnl_report.config.logging import logger
from pnl_report.core.exceptions import AppError, MissingExtraInfoError
from pnl_report.infrastructure.binance.client import BinanceApiClient
from pnl_report.infrastructure.files.parser import read_account_changes, read_extra_info
from pnl_report.infrastructure.files.writer import ReportFileWriter, write_extra_info
from pnl_report.services.processors import DepositCostBasis
from pnl_report.services.report_generator import ReportGenerator

def run_report(statement_file: str, extra_info_file: str, home_currency: str) -> int:
    """Generate the transaction log and the annual report. Returns the exit code."""
    changes = read_account_changes(statement_file)
    extra_info = read_extra_info(extra_info_file)

    price_client = None
    if settings.PRICE_LOOKUP_ENABLED:
        price_client = BinanceApiClient(settings.BINANCE_API_URL, settings.BINANCE_TIMEOUT_SECONDS)

    generator = ReportGenerator(
        extra_info,
        price_client=price_client,
        deposit_cost_basis=DepositCostBasis.from_string(settings.DEPOSIT_COST_BASIS),
        home_currency=home_currency,
    )

    try:
        report = generator.create_report(changes)
    except MissingExtraInfoError as e:
        _write_hints(e, extra_info_file)
        return 1

    try:
        annual_reports = report.create_annual_reports()
    except MissingExtraInfoError as e:
        _save_found_prices(report, extra_info_file)
        _write_hints(e, extra_info_file)
        return 1

    writer = ReportFileWriter(settings.CSV_DECIMAL_COMMA)
    writer.write_transaction_log(report, settings.TRANSACTION_LOG_FILE)
    writer.write_annual_reports(annual_reports, settings.ANNUAL_REPORT_FILE)

    _save_found_prices(report, extra_info_file)
    return 0

def _write_hints(error: MissingExtraInfoError, extra_info_file: str) -> None:
    write_extra_info(error.missing, settings.EXTRA_INFO_HINT_FILE)
    logger.error(f"{error}. Fill in the {len(error.missing)} entries listed in "
                 f"{settings.EXTRA_INFO_HINT_FILE}, add them to {extra_info_file} and run again")

def _save_found_prices(report, extra_info_file: str) -> None:
    if report.extra_info_updated:
        logger.info(f"Saving prices found through the Binance API to {extra_info_file}")
        write_extra_info(report.extra_info.get_all_entries(), extra_info_file)

def main():
    if settings is None:
        sys.exit(1)

    parser = argparse.ArgumentParser(description="Binance PNL report CLI")
    parser.add_argument("statement", help="Binance transaction statement (CSV)")
    parser.add_argument("--extra-info", default="extra_info.csv",
                        help="Extra info CSV with prices, exchange rates and auto-invest proportions")
    parser.add_argument("--home-currency", default=settings.HOME_CURRENCY,
                        help="Currency of the annual report (default: %(default)s)")

    args = parser.parse_args()

    try:
        exit_code = run_report(args.statement, args.extra_info, args.home_currency)
    except AppError as e:
        logger.error(f"Report generation failed: {e}")
        sys.exit(1)
    sys.exit(exit_code)

if __name__ == "__main__":
    main()
