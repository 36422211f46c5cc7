import json

import pytest

from quantavault import cli

from conftest import FAST_KDF

MASTER = "CorrectHorse!1"


@pytest.fixture
def home(qv_home, monkeypatch):
    with open(qv_home / "config.json", "w", encoding="utf-8") as f:
        json.dump({"kdf": FAST_KDF, "owner": "alice"}, f)
    monkeypatch.setenv("COLUMNS", "200")
    monkeypatch.setattr(cli, "getpass", lambda prompt="": MASTER)
    return qv_home


def test_generate_and_score(home, capsys):
    assert cli.main(["generate", "--length", "12", "--copies", "2"]) == 0
    out = capsys.readouterr().out
    assert "Password #2" in out
    assert cli.main(["score", "password"]) == 0
    assert "22 / 100" in capsys.readouterr().out


def test_generate_rejects_out_of_range_length(home):
    with pytest.raises(SystemExit):
        cli.main(["generate", "--length", "4"])


def test_vault_flow(home, capsys, tmp_path):
    assert cli.main(["vault", "create"]) == 0
    assert (home / "vault.bin").exists()

    assert cli.main(["vault", "add", "--title", "Gmail", "--username", "me@x.com", "--password", "Secret123"]) == 0
    assert cli.main(["vault", "add", "--title", "Bad", "--username", "me", "--password", "123"]) == 1

    csv_file = tmp_path / "export.csv"
    csv_file.write_text("name,url,username,password\nBank,https://bank.com,me,Secret123\n", encoding="utf-8")
    assert cli.main(["import", str(csv_file)]) == 0

    capsys.readouterr()
    assert cli.main(["vault", "list", "--show"]) == 0
    out = capsys.readouterr().out
    assert "Gmail" in out and "Bank" in out and "Secret123" in out

    assert cli.main(["audit"]) == 0
    out = capsys.readouterr().out
    assert "Security score" in out
    assert "critical" in out


def test_wrong_master_password(home, monkeypatch, capsys):
    assert cli.main(["vault", "create"]) == 0
    monkeypatch.setattr(cli, "getpass", lambda prompt="": "wrong")
    assert cli.main(["vault", "list"]) == 1
    assert "Incorrect master password" in capsys.readouterr().out
