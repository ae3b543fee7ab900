import io
import logging
import zipfile
import zlib
from pathlib import Path, PurePosixPath

from langpack.trees import TreeParseError, anchored_path, dump_canonical, parse_json

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    pass


def _normalize_line_endings(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return text if text.endswith("\n") else text + "\n"


def _safe_target(mod_folder: Path, relative: str) -> Path | None:
    parts = [part for part in PurePosixPath(relative).parts if part not in ("", "/")]
    if not parts or ".." in parts:
        return None
    return mod_folder.joinpath(*parts)


def extract_lang_files(archive: bytes | str | Path, mod_folder: Path, suffix: str, anchor: str) -> tuple[list[Path], list[str]]:
    """
    Extract every archive entry ending with suffix into mod_folder.

    Entries are placed at their path from the anchor segment on. Valid JSON is
    written in canonical form, anything else verbatim with LF line endings.

    Returns:
        (written files, warnings)

    Raises:
        ExtractionError: the archive holds no matching entry.
    """
    source = io.BytesIO(archive) if isinstance(archive, bytes) else archive
    try:
        zf = zipfile.ZipFile(source)
    except zipfile.BadZipFile as e:
        raise ExtractionError(f"Not a zip archive: {e}") from e

    written = []
    warnings = []
    with zf:
        entries = [
            info for info in zf.infolist()
            if not info.is_dir() and info.filename.replace("\\", "/").lower().endswith(suffix.lower())
        ]
        if not entries:
            raise ExtractionError(f"No {suffix.lstrip('/')} files in archive")

        for info in entries:
            relative = anchored_path(info.filename, anchor)
            target = _safe_target(mod_folder, relative)
            if target is None:
                warnings.append(f"{info.filename}: unsafe path, skipped")
                continue

            try:
                data = zf.read(info)
            except (zipfile.BadZipFile, zlib.error, NotImplementedError, RuntimeError, EOFError) as e:
                raise ExtractionError(f"{info.filename}: cannot read entry ({e})") from e
            text = data.decode("utf-8-sig", errors="replace")
            try:
                content = dump_canonical(parse_json(text))
            except TreeParseError as e:
                content = _normalize_line_endings(text)
                warnings.append(f"{relative}: invalid JSON, saved raw ({e})")

            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            logger.debug(f"Saved: {target}")
            written.append(target)

    return written, warnings
