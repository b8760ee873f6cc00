from typing import List, Optional

from pnl_report.config.logging import logger
from pnl_report.core.exceptions import MissingExtraInfoError
from pnl_report.core.extra_info import ExtraInfo
from pnl_report.core.models import ExtraInfoEntry, RawAccountChange
from pnl_report.core.transaction import Transaction
from pnl_report.services.classifier import clarify_transaction_types
from pnl_report.services.grouping import group_transactions_by_timestamp, update_lending_assets
from pnl_report.services.processors import DepositCostBasis, get_necessary_extra_info
from pnl_report.services.report import Report, exchange_rate_hint, years_covered
from pnl_report.utils.time_converter import get_year_end_timestamp


class ReportGenerator:
    """
    Runs the whole pipeline on an in-memory ledger:
    raw changes -> transactions -> typed transactions -> wallet snapshots.
    """

    def __init__(self, extra_info: ExtraInfo, price_client=None,
                 deposit_cost_basis: DepositCostBasis = DepositCostBasis.ZERO,
                 home_currency: Optional[str] = None):
        self.extra_info = extra_info
        self.price_client = price_client
        self.deposit_cost_basis = deposit_cost_basis
        self.home_currency = home_currency

    def build_transactions(self, changes: List[RawAccountChange]) -> List[Transaction]:
        changes = update_lending_assets(changes)
        raw_transactions = group_transactions_by_timestamp(changes)
        logger.info(f"Grouped {len(changes)} account changes into {len(raw_transactions)} transactions")
        return clarify_transaction_types(raw_transactions)

    def find_missing_extra_info(self, transactions: List[Transaction]) -> List[ExtraInfoEntry]:
        """Extra info entries needed by the transactions and the year ends, but not provided."""
        needed = []
        for transaction in transactions:
            entry = get_necessary_extra_info(transaction, self.deposit_cost_basis)
            if entry is not None:
                needed.append(entry)
        for year in years_covered(transactions):
            needed.append(exchange_rate_hint(get_year_end_timestamp(year), self.home_currency))
        return [entry for entry in needed if not self.extra_info.contains(entry)]

    def create_report(self, changes: List[RawAccountChange]) -> Report:
        """
        Raises:
            MissingExtraInfoError: with the list of entries the user must supply.
        """
        transactions = self.build_transactions(changes)

        missing = self.find_missing_extra_info(transactions)
        if missing:
            logger.error(f"{len(missing)} extra info entries missing, can't generate the report")
            raise MissingExtraInfoError("Extra information required", missing)

        report = Report(self.extra_info, self.price_client, self.deposit_cost_basis)
        for transaction in transactions:
            report.process(transaction)
        logger.info(f"Processed {len(report)} transactions")
        return report
