import logging
from datetime import date
from pathlib import Path
from typing import Iterator

from pydantic import ValidationError

from langpack.models import ModRecord
from langpack.trees import TreeParseError, dump_canonical, load_json

logger = logging.getLogger(__name__)


class LoadError(Exception):
    pass


class ModRegistry:
    """
    The tracked mods, as stored in mods.json.

    Records are only changed through record_update(); nothing is written to
    disk until save() is called.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._mods: list[ModRecord] = []

    def load(self):
        if not self.path.exists():
            logger.debug(f"{self.path} not found, starting with an empty registry")
            self._mods = []
            return

        try:
            data = load_json(self.path)
            if not isinstance(data, list):
                raise TreeParseError(f"expected a JSON array, got {type(data).__name__}")
            self._mods = [ModRecord.model_validate(entry) for entry in data]
        except (OSError, TreeParseError, ValidationError) as e:
            raise LoadError(f"Failed to load {self.path}: {e}") from e

    def save(self):
        data = [mod.model_dump(mode="json", by_alias=True, exclude_none=True) for mod in self._mods]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8", newline="") as f:
            f.write(dump_canonical(data))

    def __iter__(self) -> Iterator[ModRecord]:
        return iter([mod.model_copy() for mod in self._mods])

    def __len__(self) -> int:
        return len(self._mods)

    def _find(self, name: str) -> ModRecord | None:
        wanted = name.casefold()
        for mod in self._mods:
            if mod.name.casefold() == wanted:
                return mod
        return None

    def find_by_name(self, name: str) -> ModRecord | None:
        mod = self._find(name)
        return mod.model_copy() if mod else None

    def get_version(self, name: str) -> str | None:
        mod = self._find(name)
        return mod.version if mod else None

    def record_update(self, name: str, version: str, updated: date):
        mod = self._find(name)
        if mod is None:
            raise KeyError(name)
        mod.version = version
        mod.last_updated = updated
