import io
import json
import zipfile
from pathlib import Path

import pytest

from langpack import sync
from langpack.models import LangPackConfig, ReleaseDescriptor
from langpack.sync import encode_url, sync_mods


def make_zip(files):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def workspace(tmp_path):
    (tmp_path / "mods.json").write_text(json.dumps([
        {"name": "Fresh", "modid": "fresh"},
        {"name": "Current", "modid": "current", "version": "1.0.0"},
        {"name": "Stale", "modid": "stale", "version": "1.0.0"},
        {"name": "Nameless"},
    ]), encoding="utf-8")
    return tmp_path


def fake_network(monkeypatch, releases, archives, recent=frozenset()):
    checked = []
    downloads = []

    def resolve(config, modid):
        checked.append(modid)
        return releases.get(modid)

    def download(url, folder):
        path = Path(folder) / "release.zip"
        path.write_bytes(archives[url])
        downloads.append(path)
        return path

    monkeypatch.setattr(sync, "fetch_recent_mod_ids", lambda config: set(recent))
    monkeypatch.setattr(sync, "resolve_latest", resolve)
    monkeypatch.setattr(sync, "download_archive", download)
    return checked, downloads


def test_sync_downloads_new_and_updated_mods(workspace, monkeypatch):
    releases = {
        "fresh": ReleaseDescriptor(version="0.5.0", download_url="https://example.com/fresh.zip"),
        "current": ReleaseDescriptor(version="v1.0.0", download_url="https://example.com/current.zip"),
    }
    archives = {"https://example.com/fresh.zip": make_zip({"fresh/assets/fresh/lang/en.json": '{"k": "v"}'})}
    checked, downloads = fake_network(monkeypatch, releases, archives, recent={"current"})

    assert sync_mods(LangPackConfig(), base_dir=workspace) == 0

    assert checked == ["fresh", "current"]
    assert (workspace / "mods" / "Fresh" / "assets" / "fresh" / "lang" / "en.json").exists()
    assert all(not path.exists() for path in downloads)

    mods = json.loads((workspace / "mods.json").read_text(encoding="utf-8"))
    assert mods[0]["version"] == "0.5.0"
    assert "lastUpdated" in mods[0]
    assert mods[1]["version"] == "1.0.0"
    assert "lastUpdated" not in mods[1]
    assert (workspace / "update-log.txt").read_text(encoding="utf-8") == "Updated mods:\n\n- Fresh: none → 0.5.0\n"


def test_archive_without_lang_files_leaves_record_alone(workspace, monkeypatch):
    releases = {"fresh": ReleaseDescriptor(version="0.5.0", download_url="https://example.com/fresh.zip")}
    archives = {"https://example.com/fresh.zip": make_zip({"modinfo.json": "{}"})}
    fake_network(monkeypatch, releases, archives)
    before = (workspace / "mods.json").read_text(encoding="utf-8")

    assert sync_mods(LangPackConfig(), base_dir=workspace) == 0

    assert (workspace / "mods.json").read_text(encoding="utf-8") == before
    assert not (workspace / "update-log.txt").exists()


def test_unreadable_registry_aborts(tmp_path, monkeypatch):
    (tmp_path / "mods.json").write_text("[{", encoding="utf-8")
    checked, _ = fake_network(monkeypatch, {}, {})
    assert sync_mods(LangPackConfig(), base_dir=tmp_path) == 1
    assert checked == []


def test_encode_url():
    assert encode_url("https://mods.example.com/files/asset/1/My Mod_1.0.zip") == \
        "https://mods.example.com/files/asset/1/My%20Mod_1.0.zip"
    assert encode_url("https://example.com/download?dl=a%20b.zip&x=1") == "https://example.com/download?dl=a%20b.zip&x=1"


def test_download_archive_uses_wget(tmp_path, monkeypatch):
    calls = []

    def fake_download(url, out=None, bar=None):
        calls.append((url, out, bar))
        Path(out).write_bytes(b"zip")
        return out

    monkeypatch.setattr(sync.wget, "download", fake_download)
    path = sync.download_archive("https://example.com/a b.zip", str(tmp_path))
    assert path == tmp_path / "release.zip"
    assert calls == [("https://example.com/a%20b.zip", str(tmp_path / "release.zip"), None)]


def test_failing_mods_do_not_stop_the_run(tmp_path, monkeypatch):
    (tmp_path / "mods.json").write_text(json.dumps([
        {"name": "Corrupt", "modid": "corrupt", "version": "0.1.0"},
        {"name": "Offline", "modid": "offline", "version": "0.1.0"},
        {"name": "Good", "modid": "good", "version": "0.1.0"},
    ]), encoding="utf-8")
    releases = {
        modid: ReleaseDescriptor(version="1.0.0", download_url=f"https://example.com/{modid}.zip")
        for modid in ("corrupt", "offline", "good")
    }
    corrupt = make_zip({"c/assets/c/lang/en.json": '{"k": "AAAAAAAA"}'}).replace(b"AAAAAAAA", b"BBBBBBBB")
    archives = {
        "https://example.com/corrupt.zip": corrupt,
        "https://example.com/good.zip": make_zip({"g/assets/g/lang/en.json": '{"k": "v"}'}),
    }
    checked, _ = fake_network(monkeypatch, releases, archives, recent={"corrupt", "offline", "good"})

    assert sync_mods(LangPackConfig(), base_dir=tmp_path) == 0

    assert checked == ["corrupt", "offline", "good"]
    mods = json.loads((tmp_path / "mods.json").read_text(encoding="utf-8"))
    assert [m["version"] for m in mods] == ["0.1.0", "0.1.0", "1.0.0"]
    assert (tmp_path / "mods" / "Good" / "assets" / "g" / "lang" / "en.json").exists()
    assert (tmp_path / "update-log.txt").read_text(encoding="utf-8") == "Updated mods:\n\n- Good: 0.1.0 → 1.0.0\n"
