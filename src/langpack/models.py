from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PackInfo(BaseModel):
    name: str = "Polish Translations Pack"
    modid: str = "polishtranslationspack"
    description: str = "Polish Translations Pack - a collection of Polish localizations for various Vintage Story mods."
    website: str = "https://mods.vintagestory.at/polishtranslationspack"
    file_prefix: str = "PolishTranslationsPack"
    default_authors: list[str] = ["Community Translators"]


class LangPackConfig(BaseModel):
    api_url: str = "https://mods.vintagestory.at/api"
    source_language: str = "en"
    target_language: str = "pl"
    mods_file: str = "mods.json"
    mods_folder: str = "mods"
    game_folder: str = "game"
    dist_folder: str = "dist"
    build_history_file: str = "build-history.json"
    update_log_file: str = "update-log.txt"
    translators_file: str = "translators.txt"
    icon_file: str = "modicon.png"
    anchor: str = "assets/"
    request_timeout: float = 30.0
    log_level: str = "INFO"
    pack: PackInfo = PackInfo()

    @property
    def reference_filename(self) -> str:
        return f"{self.source_language}.json"

    @property
    def translated_filename(self) -> str:
        return f"{self.target_language}.json"

    @property
    def entry_suffix(self) -> str:
        return f"/lang/{self.reference_filename}"


class ModRecord(BaseModel):
    # unknown keys in mods.json survive a load/save cycle
    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)

    name: str
    modid: str | None = None
    version: str | None = None
    last_updated: date | str | None = Field(default=None, alias="lastUpdated")


class ReleaseDescriptor(BaseModel):
    version: str
    download_url: str


class CompletenessResult(BaseModel):
    total: int = 0
    translated: int = 0

    @property
    def complete(self) -> bool:
        return self.total > 0 and self.translated == self.total

    @property
    def missing(self) -> int:
        return self.total - self.translated


class ModBuildStat(BaseModel):
    name: str
    version: str
    content_hash: str
    translated: int
    total: int
    complete: bool


class HistoryMod(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    name: str | None = None
    version: str | None = None
    hash: str | None = None


class BuildHistoryEntry(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True, coerce_numbers_to_str=True)

    version: str | None = None
    date: str | None = None
    timestamp: str | None = None
    mods_count: int | None = Field(default=None, alias="modsCount")
    mods: list[HistoryMod] = []

    @field_validator("mods", mode="before")
    @classmethod
    def _objects_only(cls, value):
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, (dict, HistoryMod))]


class ChangeKind(str, Enum):
    ADDED = "added"
    UPDATED = "updated"
    FIXED = "fixed"
    UNCHANGED = "unchanged"


class ModChange(BaseModel):
    name: str
    kind: ChangeKind
    version: str
    previous_version: str | None = None
