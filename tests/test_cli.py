import json

import pytest

from strategy_lab import run
from strategy_lab.config import get_settings


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    monkeypatch.delenv("STRATEGY_LAB_DATA_SOURCE", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_synthetic_run_writes_outputs(tmp_path, capsys):
    code = run.main([
        "-d", "EMA(9) crosses above EMA(21)",
        "-r", "Risk 2% per trade",
        "--source", "synthetic",
        "--pairs", "EURUSD",
        "--seed", "1",
        "--years", "2",
        "--export", str(tmp_path),
        "--json", str(tmp_path / "report.json"),
        "--plot", str(tmp_path / "equity.png"),
    ])

    assert code == 0
    exported = list(tmp_path.glob("backtest_EURUSD_*.csv"))
    assert len(exported) == 1
    assert exported[0].read_text(encoding="utf-8").startswith("Pair,Entry Date,Exit Date")
    assert json.loads((tmp_path / "report.json").read_text())["comparisons"][0]["pair"] == "EURUSD"
    assert (tmp_path / "equity.png").stat().st_size > 0

    out = capsys.readouterr().out
    assert "Pair Comparison" in out
    assert "Walk-Forward" in out


def test_csv_source_without_directory_fails(monkeypatch):
    monkeypatch.delenv("STRATEGY_LAB_CSV_DIR", raising=False)
    assert run.main(["-d", "RSI(14)", "--source", "csv"]) == 2


def test_missing_description_exits():
    with pytest.raises(SystemExit):
        run.main([])
