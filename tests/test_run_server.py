from __future__ import annotations

import sys
from pathlib import Path

import pytest

from scripts import run_server, seed_dataset


def test_run_server_reloads_only_in_development(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple[str, dict]] = []

    def fake_run(target: str, **kwargs) -> None:
        calls.append((target, kwargs))

    monkeypatch.setattr(run_server.uvicorn, "run", fake_run)
    monkeypatch.delenv("APP_HOST", raising=False)
    monkeypatch.setenv("APP_PORT", "9001")
    monkeypatch.setenv("ENVIRONMENT", "production")

    run_server.main()

    assert calls == [("skillgap.web.main:app", {"host": "0.0.0.0", "port": 9001, "reload": False})]


def test_seed_dataset_populates_sqlite_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    db_path = tmp_path / "catalog.db"
    monkeypatch.setattr(
        sys, "argv", ["seed_dataset.py", "--backend", "sqlite", "--sqlite-path", str(db_path)]
    )

    seed_dataset.main()

    assert db_path.exists()
    assert "6 skills, 2 job roles, 2 assessments, 5 questions" in capsys.readouterr().out


def test_seed_dataset_missing_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        sys,
        "argv",
        [
            "seed_dataset.py",
            "--sqlite-path",
            str(tmp_path / "catalog.db"),
            "--json",
            str(tmp_path / "missing.json"),
        ],
    )

    with pytest.raises(SystemExit):
        seed_dataset.main()
