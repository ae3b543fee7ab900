import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from langpack.build import build_pack
from langpack.models import LangPackConfig
from langpack.normalize import normalize_files
from langpack.sync import sync_mods

logger = logging.getLogger(__name__)

usage = """Available commands:
  langpack normalize
  langpack sync
  langpack package <version>"""


def read_config(path: Path = Path("config.json")) -> LangPackConfig:
    if not path.exists():
        return LangPackConfig()
    with open(path, "r", encoding="utf-8-sig") as f:
        contents = json.load(f)
        return LangPackConfig.model_validate(contents)


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    command = args[0].lower() if args else "help"
    if command not in ("normalize", "sync", "package"):
        print(usage)
        return 0 if command == "help" else 2

    try:
        config = read_config()
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logging.basicConfig(level=logging.INFO, format="%(message)s")
        logger.error(f"Invalid config.json: {e}")
        return 1

    logging.basicConfig(level=config.log_level.upper(), format="%(levelname)-7s %(message)s")

    if command == "normalize":
        return normalize_files(config)
    if command == "sync":
        return sync_mods(config)
    if command == "package":
        if len(args) < 2 or not args[1].strip():
            print("Usage: langpack package <version>")
            return 2
        return build_pack(config, args[1])
    return 0


if __name__ == "__main__":
    sys.exit(main())
