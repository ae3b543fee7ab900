"""
Build history and changelogs.

build-history.json holds one entry per successful package build, newest
first. The changelog of a build is the difference between its complete mods
and the mods of the entry before it.
"""
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from langpack.models import BuildHistoryEntry, ChangeKind, HistoryMod, ModBuildStat, ModChange
from langpack.trees import TreeParseError, dump_canonical, load_json

logger = logging.getLogger(__name__)


class HistoryLoadError(Exception):
    pass


class BuildHistory:
    """
    Entries other than the newest are kept exactly as read, so an old or
    hand-edited entry never blocks a new build from being recorded.
    """

    def __init__(self, path: Path, entries: list[dict] | None = None, latest: BuildHistoryEntry | None = None):
        self.path = Path(path)
        self._entries = list(entries or [])
        self._latest = latest

    @classmethod
    def load(cls, path: Path) -> "BuildHistory":
        path = Path(path)
        if not path.exists():
            return cls(path)
        try:
            data = load_json(path)
            if not isinstance(data, list):
                raise TreeParseError(f"expected a JSON array, got {type(data).__name__}")
            latest = None
            if data and isinstance(data[0], dict):
                try:
                    latest = BuildHistoryEntry.model_validate(data[0])
                except ValidationError as e:
                    logger.warning(f"Ignoring unreadable latest entry in {path.name}: {e}")
        except (OSError, TreeParseError) as e:
            raise HistoryLoadError(f"Failed to load {path}: {e}") from e
        return cls(path, data, latest)

    @property
    def latest(self) -> BuildHistoryEntry | None:
        return self._latest

    def prepend(self, entry: BuildHistoryEntry):
        self._entries.insert(0, entry.model_dump(mode="json", by_alias=True))
        self._latest = entry

    def save(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8", newline="") as f:
            f.write(dump_canonical(self._entries))


def new_entry(version: str, complete: Iterable[ModBuildStat], now: datetime | None = None) -> BuildHistoryEntry:
    now = now or datetime.now(timezone.utc)
    mods = [HistoryMod(name=stat.name, version=stat.version, hash=stat.content_hash) for stat in complete]
    return BuildHistoryEntry(
        version=version,
        date=now.strftime("%Y-%m-%d"),
        timestamp=now.isoformat(),
        mods_count=len(mods),
        mods=mods,
    )


def classify(complete: Iterable[ModBuildStat], previous: BuildHistoryEntry | None) -> dict[str, ModChange]:
    """Classify each complete mod against the previous build as added, updated, fixed or unchanged."""
    previous_mods = {}
    if previous:
        previous_mods = {
            mod.name: mod for mod in previous.mods
            if mod.name is not None and mod.version is not None and mod.hash is not None
        }

    changes = {}
    for stat in complete:
        before = previous_mods.get(stat.name)
        if before is None:
            kind = ChangeKind.ADDED
        elif before.version != stat.version:
            kind = ChangeKind.UPDATED
        elif before.hash != stat.content_hash:
            kind = ChangeKind.FIXED
        else:
            kind = ChangeKind.UNCHANGED
        changes[stat.name] = ModChange(
            name=stat.name,
            kind=kind,
            version=stat.version,
            previous_version=before.version if before else None,
        )
    return changes


def _of_kind(changes: dict[str, ModChange], kind: ChangeKind) -> list[ModChange]:
    return sorted((change for change in changes.values() if change.kind == kind), key=lambda c: c.name)


def render_reports(
    title: str,
    version: str,
    complete: list[ModBuildStat],
    incomplete: list[ModBuildStat],
    changes: dict[str, ModChange],
) -> tuple[str, str]:
    """
    Render the changelog shipped inside the archive and the longer one kept in dist.

    Only the second one lists incomplete translations.

    Returns:
        (archive changelog, dist changelog)
    """
    added = _of_kind(changes, ChangeKind.ADDED)
    updated = _of_kind(changes, ChangeKind.UPDATED)
    fixed = _of_kind(changes, ChangeKind.FIXED)

    lines = [f"📦 {title} v{version}", ""]

    if added:
        lines.append("✅ Added translations:")
        lines.extend(f"- {change.name} v{change.version}" for change in added)
        lines.append("")

    if updated:
        lines.append("🔄 Updated translations:")
        lines.extend(f"- {change.name}: v{change.previous_version} → v{change.version}" for change in updated)
        lines.append("")

    if fixed:
        lines.append("🔧 Translation fixes:")
        lines.extend(f"- {change.name} v{change.version}" for change in fixed)
        lines.append("")

    included = sorted(complete, key=lambda stat: stat.name)
    if added or updated or fixed:
        lines += ["", "📋 Full list of included mods:"]
    else:
        lines.append("✅ Included translations:")
    lines.extend(f"- {stat.name} v{stat.version}" for stat in included)

    short = "\n".join(lines).rstrip()

    long_lines = [short]
    if incomplete:
        long_lines += ["", "", "", "⚠️ Incomplete translations (not included):"]
        long_lines.extend(
            f"- {stat.name}: {stat.translated}/{stat.total} translated"
            for stat in sorted(incomplete, key=lambda stat: stat.name)
        )
    long = "\n".join(long_lines).rstrip()

    return short + "\n", long + "\n"
