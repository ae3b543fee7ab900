import logging
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import quote, urlsplit, urlunsplit

import wget

from langpack.extract import ExtractionError, extract_lang_files
from langpack.models import LangPackConfig, ModRecord
from langpack.registry import LoadError, ModRegistry
from langpack.releases import fetch_recent_mod_ids, needs_update, resolve_latest, should_check

logger = logging.getLogger(__name__)


def encode_url(url: str) -> str:
    parts = urlsplit(url)
    return urlunsplit((
        parts.scheme,
        parts.netloc,
        quote(parts.path, safe="/%"),
        quote(parts.query, safe="=&%"),
        quote(parts.fragment, safe="%"),
    ))


def download_archive(url: str, folder: str) -> Path:
    encoded_url = encode_url(url)
    logger.debug(f"Downloading from: {encoded_url}")
    return Path(wget.download(encoded_url, out=str(Path(folder) / "release.zip"), bar=None))


class SyncSummary:

    def __init__(self):
        self.updated: list[str] = []
        self.up_to_date: list[str] = []
        self.skipped: list[str] = []
        self.failed: list[str] = []

    def log(self):
        logger.info(
            f"Updated: {len(self.updated)}, up to date: {len(self.up_to_date)}, "
            f"skipped: {len(self.skipped)}, failed: {len(self.failed)}"
        )
        for line in self.updated:
            logger.info(f"  {line}")
        if self.failed:
            logger.warning(f"Failed mods: {', '.join(self.failed)}")


def _update_mod(config: LangPackConfig, mod: ModRecord, mods_dir: Path) -> str | None:
    """Download and extract the latest release; returns the new version or None if nothing changed."""
    logger.info(f"Checking mod: {mod.name} ({mod.modid})")
    release = resolve_latest(config, mod.modid)
    if release is None:
        raise ExtractionError("no usable release")

    if not needs_update(mod.version, release.version):
        logger.info(f"Latest version ({release.version}) already downloaded.")
        return None

    logger.info(f"Downloading version {release.version} from {release.download_url}")
    with tempfile.TemporaryDirectory(prefix="langpack-") as tmp:
        archive = download_archive(release.download_url, tmp)
        written, warnings = extract_lang_files(archive, mods_dir / mod.name, config.entry_suffix, config.anchor)

    for warning in warnings:
        logger.warning(f"{mod.name}: {warning}")
    if not written:
        raise ExtractionError("nothing extracted")
    return release.version


def sync_mods(config: LangPackConfig, base_dir: Path = Path(".")) -> int:
    logger.info("Updating mod translations...")

    registry = ModRegistry(base_dir / config.mods_file)
    try:
        registry.load()
    except LoadError as e:
        logger.error(str(e))
        return 1

    if not len(registry):
        logger.warning(f"No mods in {config.mods_file}")
        return 0

    recent_ids = fetch_recent_mod_ids(config)
    if not recent_ids:
        logger.info("No recently updated mods.")

    mods_dir = base_dir / config.mods_folder
    summary = SyncSummary()

    for mod in registry:
        if not mod.modid or not mod.modid.strip():
            logger.warning(f"Skipping mod without modid: {mod.name}")
            summary.skipped.append(mod.name)
            continue

        if not should_check(mod, recent_ids):
            logger.debug(f"Skipping {mod.name}, no recent updates")
            summary.up_to_date.append(mod.name)
            continue

        try:
            version = _update_mod(config, mod, mods_dir)
        except Exception as e:
            logger.error(f"{mod.name} ({mod.modid}): {e}")
            summary.failed.append(mod.name)
            continue
        if version is None:
            summary.up_to_date.append(mod.name)
            continue

        registry.record_update(mod.name, version, datetime.now(timezone.utc).date())
        summary.updated.append(f"- {mod.name}: {mod.version or 'none'} → {version}")
        logger.info(f"Updated: {mod.name} to version {version}")

    if summary.updated:
        registry.save()
        update_log = "Updated mods:\n\n" + "\n".join(summary.updated) + "\n"
        with open(base_dir / config.update_log_file, "w", encoding="utf-8", newline="") as f:
            f.write(update_log)
        logger.info(f"Changes saved to {config.mods_file} and {config.update_log_file}")
    else:
        logger.info("No changes - everything up to date.")

    summary.log()
    return 0
