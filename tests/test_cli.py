from datetime import date

import pytest

import pos_insight.periods as periods
from pos_insight import __version__
from pos_insight.cli import main


def _write_inputs(tmp_path):
    """Config file plus a small ledger export."""
    config = tmp_path / "pos_insight_config.toml"
    config.write_text(
        '[database]\npath = "pos.sqlite"\n\n[analytics]\ndefault_owner = "shop-1"\n',
        encoding="utf-8",
    )
    (tmp_path / "sales.csv").write_text(
        "id,owner_id,occurred_at,total,payment_method,canceled\n"
        "s1,shop-1,2025-03-02T10:00:00,1000,cash,false\n"
        "s2,shop-1,2025-03-03T10:00:00,500,credit,false\n",
        encoding="utf-8",
    )
    (tmp_path / "items.csv").write_text(
        "sale_id,product_id,quantity,unit_price,unit_cost\n"
        "s1,p1,10,100,40\n"
        "s2,p2,5,100,30\n",
        encoding="utf-8",
    )
    (tmp_path / "expenses.csv").write_text(
        "id,owner_id,occurred_on,amount,category\ne1,shop-1,2025-03-01,300,rent\n",
        encoding="utf-8",
    )
    return config


def _import(config, tmp_path):
    main(
        [
            "--config",
            str(config),
            "import",
            "--sales",
            str(tmp_path / "sales.csv"),
            "--items",
            str(tmp_path / "items.csv"),
            "--expenses",
            str(tmp_path / "expenses.csv"),
        ]
    )


def test_version_flag(capsys):
    main(["--version"])
    assert __version__ in capsys.readouterr().out


def test_import_then_dre_table(tmp_path, capsys):
    config = _write_inputs(tmp_path)
    _import(config, tmp_path)
    out = capsys.readouterr().out
    assert "2 rows inserted" in out

    main(
        [
            "--config",
            str(config),
            "dre",
            "--from-date",
            "2025-03-01",
            "--to-date",
            "2025-03-31",
        ]
    )
    out = capsys.readouterr().out
    assert "Income statement (DRE)" in out
    assert "Net profit" in out
    # 1500 revenue - 550 direct cost - 300 expenses
    assert "650.00" in out


def test_distribution_save_and_csv_output(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr(periods, "_today", lambda: date(2025, 3, 20))
    config = _write_inputs(tmp_path)
    _import(config, tmp_path)
    capsys.readouterr()

    out_dir = tmp_path / "out"
    main(
        [
            "--config",
            str(config),
            "--display-mode",
            "csv",
            "--output-dir",
            str(out_dir),
            "distribution",
            "--save",
        ]
    )
    out = capsys.readouterr().out
    assert "Saved distribution plan for 2025-03" in out
    assert len(list(out_dir.glob("distribution_*.csv"))) == 1


def test_trends_runs_on_current_month(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr(periods, "_today", lambda: date(2025, 3, 20))
    config = _write_inputs(tmp_path)
    _import(config, tmp_path)
    capsys.readouterr()

    main(["--config", str(config), "trends"])
    out = capsys.readouterr().out
    assert "Trend metrics (2025-03)" in out
    assert "Top categories (current month)" in out


def test_errors_exit_with_a_message(tmp_path):
    config = _write_inputs(tmp_path)

    with pytest.raises(SystemExit, match="Error"):
        main(["--config", str(config), "rollup", "--months", "0"])

    with pytest.raises(SystemExit, match="Configuration error"):
        main(["--config", str(tmp_path / "missing.toml"), "trends"])


def test_analytics_on_missing_ledger_exit_without_creating_it(tmp_path):
    """Only 'import' creates the database; reports on a missing one fail cleanly."""
    config = _write_inputs(tmp_path)

    with pytest.raises(SystemExit, match="Ledger database not found"):
        main(["--config", str(config), "dre", "--period", "mtd"])
    assert not (tmp_path / "pos.sqlite").exists()


def test_seasonality_and_abc_summaries(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr(periods, "_today", lambda: date(2025, 3, 20))
    config = _write_inputs(tmp_path)
    _import(config, tmp_path)
    capsys.readouterr()

    main(["--config", str(config), "seasonality"])
    out = capsys.readouterr().out
    assert "Best month: 2025-03 (1500.00)" in out
    assert "Seasonality (last 12 months)" in out

    main(["--config", str(config), "abc", "--period", "mtd"])
    out = capsys.readouterr().out
    assert "A: 2 (1500.00) | B: 0 (0.00) | C: 0 (0.00)" in out
