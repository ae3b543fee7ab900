import json

import pytest

from langpack import main as cli


@pytest.mark.parametrize("argv, code", [([], 0), (["help"], 0), (["frobnicate"], 2)])
def test_usage_without_action(tmp_path, monkeypatch, capsys, argv, code):
    monkeypatch.chdir(tmp_path)
    assert cli.main(argv) == code
    assert "Available commands" in capsys.readouterr().out
    assert list(tmp_path.iterdir()) == []


def test_package_requires_version(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert cli.main(["package", "  "]) == 2
    assert "Usage" in capsys.readouterr().out
    assert not (tmp_path / "dist").exists()


def test_invalid_config_is_fatal(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config.json").write_text(json.dumps({"pack": "nope"}), encoding="utf-8")
    assert cli.main(["normalize"]) == 1


def test_normalize_rewrites_json(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    lang = tmp_path / "mods" / "M" / "lang"
    lang.mkdir(parents=True)
    (lang / "en.json").write_bytes(b'{"a":"1",\r\n"b":"x\r\ny",}')
    (lang / "broken.json").write_bytes(b"{nope")
    (lang / "latin1.json").write_bytes(b'{"k": "\xff"}')

    assert cli.main(["normalize"]) == 0

    assert (lang / "en.json").read_bytes() == b'{\n  "a": "1",\n  "b": "x\\ny"\n}\n'
    assert (lang / "broken.json").read_bytes() == b"{nope"
    assert (lang / "latin1.json").read_bytes() == b'{"k": "\xff"}'


def test_read_config_defaults(tmp_path):
    config = cli.read_config(tmp_path / "config.json")
    assert config.translated_filename == "pl.json"
    assert config.entry_suffix == "/lang/en.json"
