"""Maintenance commands exposed by ``python -m karriery``."""
import pytest

from karriery.cli import main
from karriery.config import get_settings


@pytest.fixture
def backup_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("BACKUP_DIR", str(tmp_path / "backups"))
    get_settings.cache_clear()
    yield tmp_path / "backups"
    get_settings.cache_clear()


def test_backup_then_list(backup_dir, capsys) -> None:
    assert main(["--backup"]) == 0
    written = capsys.readouterr().out
    assert "[2/2] Backup complete." in written

    assert main(["--list-backups"]) == 0
    listed = capsys.readouterr().out.strip().splitlines()
    assert len(listed) == 1
    assert listed[0].split()[0] in written


def test_restore_unknown_backup_fails(backup_dir, capsys) -> None:
    assert main(["--restore", "20990101-000000-000000"]) == 1
    assert "not found" in capsys.readouterr().out


def test_diagnostics(backup_dir, capsys) -> None:
    assert main(["--diag"]) == 0
    out = capsys.readouterr().out
    assert "Backend: memory" in out
    assert "users: 1 active: 1" in out
