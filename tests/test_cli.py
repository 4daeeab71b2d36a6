"""Tests for the command-line entry point."""

import json

import pytest

from pingodoce import __version__
from pingodoce.cli import main
from pingodoce.db import Storage


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ("PHONE_NUMBER", "PASSWORD", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    return tmp_path / "data"


def _seed(data_dir):
    data_dir.mkdir(parents=True, exist_ok=True)
    storage = Storage(data_dir / "pingodoce.db")
    storage.ingest(
        {
            "transactionId": "T1",
            "transactionDate": "2024-05-01T10:00:00",
            "storeId": "1",
            "storeName": "Pingo Doce Lisboa",
            "total": 4.5,
        },
        {"products": [{"productId": "P1", "name": "Tofu", "totalAmount": 4.5}]},
    )
    storage.close()


def test_version(data_dir, capsys):
    """version prints the package version."""
    main(["version"])
    assert capsys.readouterr().out.strip() == f"PingoDoce CLI v{__version__}"


def test_no_command_prints_help(data_dir, capsys):
    """No subcommand exits with an error status."""
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 1
    assert "usage" in capsys.readouterr().out


def test_stats_empty(data_dir, capsys):
    """stats on a fresh database reports zeros."""
    main(["stats"])
    out = capsys.readouterr().out
    assert "Total transactions: 0" in out
    assert "Date range: No data" in out


def test_stats_json(data_dir, capsys):
    """stats --json emits the counters."""
    _seed(data_dir)
    main(["stats", "--json"])
    data = json.loads(capsys.readouterr().out)
    assert data["total_transactions"] == 1
    assert data["total_products"] == 1


def test_analytics_empty(data_dir, capsys):
    """analytics with no data prints the empty message."""
    main(["analytics", "--days", "7"])
    assert "No transactions found in the last 7 days" in capsys.readouterr().out


def test_health_json(data_dir, capsys):
    """health --json scores the stored purchases."""
    _seed(data_dir)
    main(["health", "--json"])
    report = json.loads(capsys.readouterr().out)
    assert report["categories"]["protein"]["total_purchases"] == 1
    assert report["health_scores"]["protein_score"] == 100


def test_import_missing_archive(data_dir, capsys):
    """A failing command prints the error and exits 1."""
    with pytest.raises(SystemExit) as exc:
        main(["import", str(data_dir)])
    assert exc.value.code == 1
    assert "transactions.json not found" in capsys.readouterr().err


def test_sync_without_credentials(data_dir, capsys):
    """Commands that need the API fail cleanly without credentials."""
    with pytest.raises(SystemExit) as exc:
        main(["sync"])
    assert exc.value.code == 1
    assert "Authentication Error" in capsys.readouterr().err


def test_config_file_option(tmp_path, data_dir, capsys):
    """--config points the database somewhere else."""
    other = tmp_path / "other"
    _seed(other)
    config = tmp_path / "pingodoce.toml"
    config.write_text(f'[database]\npath = "{other / "pingodoce.db"}"\n', encoding="utf-8")

    main(["--config", str(config), "stats", "--json"])
    assert json.loads(capsys.readouterr().out)["total_transactions"] == 1


def test_invalid_config_exits(tmp_path, data_dir, capsys):
    """A bad config value is reported without a traceback."""
    config = tmp_path / "pingodoce.toml"
    config.write_text('[enrichment]\nbatch_size = "many"\n', encoding="utf-8")

    with pytest.raises(SystemExit) as exc:
        main(["-c", str(config), "stats"])
    assert exc.value.code == 1
    assert "enrichment.batch_size" in capsys.readouterr().err
