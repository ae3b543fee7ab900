import io
import zipfile

import pytest

from langpack.extract import ExtractionError, extract_lang_files


def make_zip(files):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def test_extracts_matching_entries_from_anchor(tmp_path):
    archive = make_zip({
        "MyMod/assets/mymod/lang/en.json": '{"b": "2",\r\n "a": "1"}',
        "MyMod/assets/mymod/lang/de.json": '{"a": "eins"}',
        "modinfo.json": "{}",
        "Other/LANG/EN.JSON": '{"x": "y"}',
    })
    written, warnings = extract_lang_files(archive, tmp_path / "MyMod", "/lang/en.json", "assets/")

    assert warnings == []
    assert sorted(p.relative_to(tmp_path).as_posix() for p in written) == [
        "MyMod/Other/LANG/EN.JSON",
        "MyMod/assets/mymod/lang/en.json",
    ]
    content = (tmp_path / "MyMod/assets/mymod/lang/en.json").read_bytes()
    assert content == b'{\n  "b": "2",\n  "a": "1"\n}\n'
    assert not (tmp_path / "MyMod/assets/mymod/lang/de.json").exists()


def test_invalid_json_is_written_raw_with_warning(tmp_path):
    archive = make_zip({"assets/game/lang/en.json": '{"a": "1"\r\n"b"'})
    written, warnings = extract_lang_files(archive, tmp_path, "/lang/en.json", "assets/")
    assert len(written) == 1
    assert len(warnings) == 1
    assert written[0].read_bytes() == b'{"a": "1"\n"b"\n'


def test_no_matching_entries(tmp_path):
    archive = make_zip({"assets/game/lang/fr.json": "{}"})
    with pytest.raises(ExtractionError):
        extract_lang_files(archive, tmp_path / "Mod", "/lang/en.json", "assets/")
    assert not (tmp_path / "Mod").exists()


def test_not_a_zip(tmp_path):
    with pytest.raises(ExtractionError):
        extract_lang_files(b"definitely not a zip", tmp_path, "/lang/en.json", "assets/")


def test_entries_escaping_the_mod_folder_are_skipped(tmp_path):
    archive = make_zip({"../../evil/lang/en.json": "{}", "ok/lang/en.json": "{}"})
    written, warnings = extract_lang_files(archive, tmp_path / "Mod", "/lang/en.json", "assets/")
    assert [p.relative_to(tmp_path).as_posix() for p in written] == ["Mod/ok/lang/en.json"]
    assert len(warnings) == 1


def test_reads_archive_from_path(tmp_path):
    path = tmp_path / "release.zip"
    path.write_bytes(make_zip({"x/assets/m/lang/en.json": '{"k": "v"}'}))
    written, _ = extract_lang_files(path, tmp_path / "Mod", "/lang/en.json", "assets/")
    assert written == [tmp_path / "Mod" / "assets" / "m" / "lang" / "en.json"]


def test_corrupted_entry_fails_the_archive(tmp_path):
    archive = make_zip({"a/assets/a/lang/en.json": '{"k": "AAAAAAAA"}'})
    archive = archive.replace(b"AAAAAAAA", b"BBBBBBBB")
    with pytest.raises(ExtractionError):
        extract_lang_files(archive, tmp_path / "Mod", "/lang/en.json", "assets/")
