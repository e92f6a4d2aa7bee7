"""Tests for the main.py command line (seed-user)."""

import pytest

import main
from auth.models import Role
from auth.store import UserStore


@pytest.fixture
def db_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'users.db'}"
    monkeypatch.setattr(main, "UserStore", lambda: UserStore(url))
    return url


def test_seed_user_creates_email_only_record(db_url, capsys):
    assert main.main(["seed-user", "--email", " Ada@Example.com ", "--name", "Ada"]) == 0
    assert "ada@example.com" in capsys.readouterr().out

    store = UserStore(db_url)
    user = store.find_by_email("ada@example.com")
    store.close()
    assert user.display_name == "Ada"
    assert user.external_id is None
    assert user.role is Role.unset


def test_seed_user_duplicate_email(db_url, capsys):
    assert main.main(["seed-user", "--email", "bo@example.com"]) == 0
    assert main.main(["seed-user", "--email", "BO@example.com"]) == 1
    assert "already exists" in capsys.readouterr().out


def test_seed_user_blank_email(db_url):
    assert main.main(["seed-user", "--email", "   "]) == 2


def test_command_required():
    with pytest.raises(SystemExit):
        main.main([])
