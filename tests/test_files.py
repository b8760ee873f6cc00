import pytest
from decimal import Decimal

import pandas as pd

from pnl_report.core.exceptions import DataSourceError
from pnl_report.core.extra_info import ExtraInfo
from pnl_report.core.models import AccountType, ExtraInfoEntry, ExtraInfoType, Operation
from pnl_report.infrastructure.files.parser import read_account_changes, read_extra_info
from pnl_report.infrastructure.files.writer import ReportFileWriter, write_extra_info
from pnl_report.services.report import Report
from pnl_report.utils.time_converter import get_year_end_timestamp, string_to_utc_timestamp
from builders import change, transactions_from

STATEMENT = """User_ID,UTC_Time,Account,Operation,Coin,Change,Remark
12345,2022-03-01 10:00:05,Spot,Sell,BTC,-0.01,
12345,2022-03-01 10:00:05,Spot,Transaction Related,USDT,420.5,
12345,2022-03-01 10:00:00,Spot,Deposit,BTC,0.01,
#12345,2022-03-02 10:00:00,Spot,Withdraw,BTC,-1,
"""


def test_read_account_changes(tmp_path):
    path = tmp_path / "statement.csv"
    path.write_text(STATEMENT)
    changes = read_account_changes(str(path))
    assert len(changes) == 3
    deposit = changes[0]
    assert deposit.utc_time == string_to_utc_timestamp("2022-03-01 10:00:00")
    assert deposit.account == AccountType.SPOT
    assert deposit.operation == Operation.DEPOSIT
    assert deposit.amount == Decimal("0.01")
    assert [c.operation for c in changes[1:]] == [Operation.SELL, Operation.TRANSACTION_RELATED]
    assert changes[2].amount == Decimal("420.5")

def test_malformed_statement(tmp_path):
    path = tmp_path / "statement.csv"
    path.write_text("UTC_Time,Account,Operation,Coin,Change\n2022-03-01 10:00:00,Spot,Deposit,BTC,abc\n")
    with pytest.raises(DataSourceError):
        read_account_changes(str(path))

    path.write_text("UTC_Time,Account,Operation,Coin\n2022-03-01 10:00:00,Spot,Deposit,BTC\n")
    with pytest.raises(DataSourceError):
        read_account_changes(str(path))

def test_missing_statement_file(tmp_path):
    with pytest.raises(DataSourceError):
        read_account_changes(str(tmp_path / "nope.csv"))

def test_extra_info_written_and_read_back(tmp_path):
    path = tmp_path / "extra.csv"
    entries = [
        ExtraInfoEntry(1672531199000, ExtraInfoType.EXCHANGE_RATE, "NOK", "9.85"),
        ExtraInfoEntry(1646128800000, ExtraInfoType.AUTO_INVEST_PROPORTIONS, "BTC|ETH", "0.5|0.5"),
        ExtraInfoEntry(1646128800000, ExtraInfoType.ASSET_PRICE, "BTC", "43000"),
    ]
    write_extra_info(entries, str(path))

    df = pd.read_csv(path, dtype=str)
    assert list(df.columns) == ["Unix timestamp", "UTC time", "Type", "Asset", "Value"]
    assert df["UTC time"][0] == "2022-03-01 10:00:00"

    extra_info = read_extra_info(str(path))
    assert len(extra_info) == 3
    assert extra_info.get_all_entries()[2] == entries[0]
    assert extra_info.get_asset_price_at_time(1646128800000, "BTC") == Decimal("43000")
    assert extra_info.get_at_time(1646128800000).type == ExtraInfoType.AUTO_INVEST_PROPORTIONS

def test_extra_info_file_may_be_absent(tmp_path):
    assert read_extra_info(str(tmp_path / "extra.csv")).is_empty()

def test_report_files(tmp_path):
    t1 = string_to_utc_timestamp("2022-03-01 10:00:00")
    changes = [
        change(Operation.BUY, "BTC", "1", t1),
        change(Operation.TRANSACTION_RELATED, "USDT", "-100", t1),
        change(Operation.SELL, "BTC", "-1", t1 + 1000),
        change(Operation.TRANSACTION_RELATED, "USDT", "150.5", t1 + 1000),
    ]
    report = Report(ExtraInfo([ExtraInfoEntry(get_year_end_timestamp(2022), ExtraInfoType.EXCHANGE_RATE,
                                              "NOK", "10")]))
    for t in transactions_from(changes):
        report.process(t)
    writer = ReportFileWriter(decimal_comma=True)
    log_path = tmp_path / "transactions.csv"
    annual_path = tmp_path / "annual.csv"
    writer.write_transaction_log(report, str(log_path))
    writer.write_annual_reports(report.create_annual_reports(), str(annual_path))

    log = pd.read_csv(log_path, sep=";", dtype=str, keep_default_na=False)
    assert list(log["Type"]) == ["Buy", "Sell"]
    assert log["PNL"][1] == "50,5"
    assert log["Wallet"][1] == "50,5 USDT"

    annual = pd.read_csv(annual_path, sep=";", dtype=str)
    assert annual["Year end"][0] == "2022-12-31"
    assert annual["PNL (home currency)"][0] == "505"
