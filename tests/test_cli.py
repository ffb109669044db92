"""Tests for main.py -- the create-user administration command."""

import sys

import pytest

import main
from auth.store import UserStore
from core.config import get_settings


@pytest.fixture
def cli_db(tmp_path, monkeypatch):
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setenv("DATABASE_URL", db_url)
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    get_settings.cache_clear()
    yield db_url
    get_settings.cache_clear()


def _run(monkeypatch, argv: list[str], passwords: list[str]) -> None:
    answers = iter(passwords)
    monkeypatch.setattr(main.getpass, "getpass", lambda prompt="": next(answers))
    monkeypatch.setattr(sys, "argv", ["main.py", *argv])
    main.main()


def test_create_admin(cli_db, monkeypatch, capsys):
    _run(monkeypatch, ["create-user", "root", "--role", "admin"], ["Passw0rd!", "Passw0rd!"])
    assert "Created user 'root'" in capsys.readouterr().out
    with UserStore(cli_db) as store:
        user = store.find_user(name="root")
    assert user.role == "admin"


def test_mismatched_passwords(cli_db, monkeypatch):
    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch, ["create-user", "root"], ["Passw0rd!", "Passw0rd?"])
    assert exc.value.code == 1


def test_weak_password_is_reported(cli_db, monkeypatch, capsys):
    with pytest.raises(SystemExit):
        _run(monkeypatch, ["create-user", "root"], ["weak", "weak"])
    assert "complexity" in capsys.readouterr().out
    with UserStore(cli_db) as store:
        assert store.count_users() == 0


def test_no_command_prints_help(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["main.py"])
    main.main()
    assert "create-user" in capsys.readouterr().out
