import logging
from datetime import datetime, timedelta, timezone
from string import Template

import requests
import semver
from pydantic import ValidationError

from langpack.models import LangPackConfig, ModRecord, ReleaseDescriptor
from langpack.rest_models import RestMod, RestModList

logger = logging.getLogger(__name__)

mods_endpoint_url = Template("$api/mods")
mod_endpoint_url = Template("$api/mod/$modid")


def _normalize_version(version: str) -> str:
    return version.strip().lstrip("vV").strip()


def _to_semver(version: str) -> semver.Version:
    """Parse a loosely written version: optional minor/patch, leading zeros, build metadata."""
    version = version.split("+", 1)[0]
    core, sep, prerelease = version.partition("-")
    parts = [str(int(part)) if part.isdigit() else part for part in core.split(".")]
    return semver.Version.parse(".".join(parts) + sep + prerelease, optional_minor_and_patch=True)


def compare_versions(version1: str, version2: str) -> int:
    """
    Compare two release version strings by semantic version precedence,
    returning -1, 0 or 1.

    A leading "v" and build metadata are ignored. Versions that do not parse
    are compared as case-insensitive text instead, so odd tags still get a
    stable order.
    """
    version1 = _normalize_version(version1)
    version2 = _normalize_version(version2)

    if version1.casefold() == version2.casefold():
        return 0

    try:
        parsed1 = _to_semver(version1)
        parsed2 = _to_semver(version2)
    except (ValueError, TypeError):
        logger.debug(f"Comparing '{version1}' and '{version2}' as plain text")
        left, right = version1.casefold(), version2.casefold()
        return (left > right) - (left < right)

    return parsed1.compare(parsed2)


def needs_update(current_version: str | None, latest_version: str) -> bool:
    if not current_version or not current_version.strip():
        return True
    return compare_versions(current_version, latest_version) < 0


def _parse_release_date(value: str) -> datetime | None:
    try:
        released = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if released.tzinfo is None:
        return released.replace(tzinfo=timezone.utc)
    return released.astimezone(timezone.utc)


def recent_mod_ids(listing: RestModList, now: datetime | None = None) -> set[str]:
    """Identifiers of mods whose last release is no older than the start of yesterday (UTC)."""
    now = now or datetime.now(timezone.utc)
    today = datetime(now.year, now.month, now.day, tzinfo=timezone.utc)
    cutoff = today - timedelta(days=1)

    recent = set()
    for mod in listing.mods:
        if not mod.lastreleased:
            continue
        released = _parse_release_date(mod.lastreleased)
        if released is None or released < cutoff:
            continue
        recent.update(modid for modid in mod.modidstrs if modid and modid.strip())
    return recent


def fetch_recent_mod_ids(config: LangPackConfig) -> set[str]:
    url = mods_endpoint_url.substitute({"api": config.api_url})
    logger.info(f"Fetching mod list @ {url}")
    try:
        response = requests.get(url, timeout=config.request_timeout)
        if not response.ok:
            logger.error(f"Failed to fetch mods list: HTTP {response.status_code}")
            return set()
        listing = RestModList.model_validate_json(response.text)
    except (requests.RequestException, ValidationError) as e:
        logger.error(f"Error fetching mods list: {e}")
        return set()

    return recent_mod_ids(listing)


def resolve_latest(config: LangPackConfig, modid: str) -> ReleaseDescriptor | None:
    """Latest release of a mod, or None when it cannot be determined."""
    url = mod_endpoint_url.substitute({"api": config.api_url, "modid": modid})
    logger.debug(f"Getting release info @ {url}")
    try:
        response = requests.get(url, timeout=config.request_timeout)
        if not response.ok:
            logger.warning(f"Cannot fetch API for {modid}: HTTP {response.status_code}")
            return None
        mod = RestMod.model_validate_json(response.text)
    except (requests.RequestException, ValidationError) as e:
        logger.warning(f"Cannot fetch API for {modid}: {e}")
        return None

    if mod.statuscode != "200" or mod.mod is None or not mod.mod.releases:
        logger.warning(f"{modid} status_code: {mod.statuscode}, no release found")
        return None

    latest = mod.mod.releases[0]
    if not latest.modversion or not latest.modversion.strip() or not latest.mainfile or not latest.mainfile.strip():
        logger.warning(f"No file data for {modid}")
        return None

    return ReleaseDescriptor(version=latest.modversion, download_url=latest.mainfile)


def should_check(record: ModRecord, recent_ids: set[str]) -> bool:
    """Mods never downloaded are always checked; others only when released recently."""
    if not record.version or not record.version.strip():
        return True
    return record.modid in recent_ids
