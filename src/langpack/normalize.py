import logging
from pathlib import Path

from langpack.models import LangPackConfig
from langpack.trees import TreeParseError, load_json, write_canonical

logger = logging.getLogger(__name__)


def normalize_folder(folder: Path) -> tuple[int, int]:
    """Rewrite every *.json below folder in canonical form. Returns (rewritten, failed)."""
    rewritten = 0
    failed = 0
    for path in sorted(folder.rglob("*.json")):
        if not path.is_file():
            continue
        try:
            write_canonical(path, load_json(path))
        except (OSError, TreeParseError) as e:
            logger.error(f"{path}: {e}")
            failed += 1
            continue
        logger.debug(f"Normalized {path}")
        rewritten += 1
    return rewritten, failed


def normalize_files(config: LangPackConfig, base_dir: Path = Path(".")) -> int:
    logger.info(f"Converting *.json files (./{config.mods_folder} and ./{config.game_folder}, LF-only)")

    rewritten = 0
    failed = 0
    for folder in (base_dir / config.mods_folder, base_dir / config.game_folder):
        if not folder.is_dir():
            logger.warning(f"Skipping missing folder: {folder}")
            continue
        ok, bad = normalize_folder(folder)
        rewritten += ok
        failed += bad

    logger.info(f"Conversion completed: {rewritten} rewritten, {failed} failed.")
    return 0
