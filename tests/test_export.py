import json
from datetime import date

import pytest

from strategy_lab.export import (
    CSV_HEADER,
    export_filename,
    format_number,
    save_report_json,
    trades_to_csv,
    write_csv,
)
from strategy_lab.models import BacktestResult, ComparisonReport, Metrics, PairComparison, Trade, WindowResult


@pytest.fixture
def result():
    trades = [
        Trade("EURUSD", "2024-01-02", "2024-01-09", 1.1, 1.12, 18.0, 1.8),
        Trade("EURUSD", "2024-02-01", "2024-02-05", 1.12, 1.105, -13.89, -1.34),
    ]
    metrics = Metrics(
        sharpe=0.42, max_drawdown_pct=1.5, win_rate_pct=50.0, total_return_pct=0.04,
        profit_factor=1.3, t_statistic=0.12, p_value=0.9045, total_trades=2,
    )
    return BacktestResult(pair="EURUSD", trades=trades, metrics=metrics)


@pytest.mark.parametrize("value, text", [
    (0, "0"),
    (0.0, "0"),
    (-0.0, "0"),
    (3, "3"),
    (50.0, "50"),
    (9999.0, "9999"),
    (1.5, "1.5"),
    (-13.89, "-13.89"),
    (0.1 + 0.2, "0.30000000000000004"),
    (1e-8, "1e-8"),
    (5e-7, "5e-7"),
    (-5e-7, "-5e-7"),
    (1e-6, "0.000001"),
    (1e21, "1e+21"),
    (float("nan"), "NaN"),
    (float("inf"), "Infinity"),
    (float("-inf"), "-Infinity"),
])
def test_format_number(value, text):
    assert format_number(value) == text


def test_csv_layout(result):
    lines = trades_to_csv(result).split("\n")

    assert lines[0] == CSV_HEADER
    assert lines[1] == "EURUSD,2024-01-02,2024-01-09,1.1,1.12,18,1.8"
    assert lines[2] == "EURUSD,2024-02-01,2024-02-05,1.12,1.105,-13.89,-1.34"
    assert lines[3] == ""
    assert lines[4:] == [
        "Sharpe,0.42",
        "Max Drawdown %,1.5",
        "Win Rate %,50",
        "Total Return %,0.04",
        "Profit Factor,1.3",
        "t-Statistic,0.12",
        "p-Value,0.9045",
    ]


def test_csv_has_no_trailing_newline(result):
    assert not trades_to_csv(result).endswith("\n")


def test_csv_without_trades():
    lines = trades_to_csv(BacktestResult(pair="EURUSD")).split("\n")
    assert lines[0] == CSV_HEADER
    assert lines[1] == ""
    assert lines[2] == "Sharpe,0"
    assert len(lines) == 9


@pytest.mark.parametrize("instrument, name", [
    ("EURUSD", "backtest_EURUSD_2023-01-01_2023-12-31.csv"),
    (None, "backtest_multi_2023-01-01_2023-12-31.csv"),
    ("", "backtest_multi_2023-01-01_2023-12-31.csv"),
])
def test_export_filename(instrument, name):
    assert export_filename(instrument, date(2023, 1, 1), date(2023, 12, 31)) == name


def test_export_filename_accepts_timestamps():
    assert export_filename("GBPUSD", "2023-01-01T10:00:00", "2023-06-30") == "backtest_GBPUSD_2023-01-01_2023-06-30.csv"


def test_write_csv(tmp_path, result):
    path = write_csv(result, tmp_path / "out" / "trades.csv")
    assert path.read_text(encoding="utf-8") == trades_to_csv(result)


def test_save_report_json(tmp_path, result):
    report = ComparisonReport(
        comparisons=[PairComparison("EURUSD", result.metrics, 2, "synthetic", result)],
        walkforward=[WindowResult(1, 3, 0.5, 0.8, pair="EURUSD")],
        skipped=["GBPUSD"],
    )
    path = save_report_json(report, tmp_path / "report.json")
    data = json.loads(path.read_text(encoding="utf-8"))

    assert data["skipped"] == ["GBPUSD"]
    assert data["comparisons"][0]["pair"] == "EURUSD"
    assert data["comparisons"][0]["sharpe"] == 0.42
    assert data["walkforward"][0] == {"pair": "EURUSD", "window": 1, "trades": 3, "returnPct": 0.5, "sharpe": 0.8}
    assert data["best"]["pair"] == "EURUSD"
    assert len(data["best"]["trades"]) == 2
