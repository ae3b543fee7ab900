import logging
import zipfile
from pathlib import Path

from langpack.history import BuildHistory, HistoryLoadError, classify, new_entry, render_reports
from langpack.models import LangPackConfig, ModBuildStat
from langpack.registry import LoadError, ModRegistry
from langpack.trees import (
    TranslationTree,
    TreeParseError,
    anchored_path,
    count_translated,
    dump_canonical,
    find_files,
    fingerprint,
    load_tree,
    merge_tree,
)

logger = logging.getLogger(__name__)


class BuildContext:
    """State of one package run, handed from stage to stage."""

    def __init__(self, version: str):
        self.version = version
        self.stats: list[ModBuildStat] = []
        self.merged_files: dict[str, TranslationTree] = {}
        self.skipped: list[str] = []

    @property
    def complete(self) -> list[ModBuildStat]:
        return sorted((s for s in self.stats if s.complete), key=lambda s: s.name)

    @property
    def incomplete(self) -> list[ModBuildStat]:
        return sorted((s for s in self.stats if not s.complete), key=lambda s: s.name)


def _load_all(mod_name: str, files: list[Path]) -> dict[Path, TranslationTree]:
    trees = {}
    for path in files:
        try:
            trees[path] = load_tree(path)
        except (OSError, TreeParseError) as e:
            logger.warning(f"{mod_name}: error in {path.name} - {e}")
    return trees


def _merge_all(trees: dict[Path, TranslationTree]) -> TranslationTree:
    merged = {}
    for tree in trees.values():
        merge_tree(merged, tree)
    return merged


def read_translators(config: LangPackConfig, base_dir: Path) -> list[str]:
    path = base_dir / config.translators_file
    if not path.exists():
        return list(config.pack.default_authors)
    authors = [line.strip() for line in path.read_text(encoding="utf-8-sig").splitlines() if line.strip()]
    return authors or list(config.pack.default_authors)


def scan_mod(config: LangPackConfig, ctx: BuildContext, registry: ModRegistry, mod_folder: Path):
    mod_name = mod_folder.name

    reference_files = find_files(mod_folder, config.reference_filename)
    translated_files = find_files(mod_folder, config.translated_filename)
    if not reference_files:
        logger.warning(f"{mod_name}: no {config.reference_filename} - skipping.")
        ctx.skipped.append(mod_name)
        return
    if not translated_files:
        logger.warning(f"{mod_name}: no {config.translated_filename} - skipping.")
        ctx.skipped.append(mod_name)
        return

    reference = _merge_all(_load_all(mod_name, reference_files))
    translated_trees = _load_all(mod_name, translated_files)
    translated = _merge_all(translated_trees)

    result = count_translated(reference, translated)
    stat = ModBuildStat(
        name=mod_name,
        version=registry.get_version(mod_name) or "unknown",
        content_hash=fingerprint(translated),
        translated=result.translated,
        total=result.total,
        complete=result.complete,
    )
    ctx.stats.append(stat)

    if not stat.complete:
        logger.warning(f"{mod_name}: incomplete ({stat.translated}/{stat.total}, missing {result.missing})")
        return
    logger.info(f"{mod_name}: complete ({stat.translated}/{stat.total})")

    for path, tree in translated_trees.items():
        relative = anchored_path(path.relative_to(mod_folder).as_posix(), config.anchor)
        merge_tree(ctx.merged_files.setdefault(relative, {}), tree)


def modinfo(config: LangPackConfig, version: str, authors: list[str]) -> dict:
    return {
        "type": "content",
        "name": config.pack.name,
        "modid": config.pack.modid,
        "description": config.pack.description,
        "website": config.pack.website,
        "version": version,
        "authors": authors,
        "dependencies": {"game": ""},
    }


def write_archive(zip_path: Path, config: LangPackConfig, ctx: BuildContext, changelog: str, base_dir: Path):
    zip_path.parent.mkdir(parents=True, exist_ok=True)
    if zip_path.exists():
        zip_path.unlink()

    authors = read_translators(config, base_dir)
    with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
        zf.writestr("modinfo.json", dump_canonical(modinfo(config, ctx.version, authors)))
        for relative in sorted(ctx.merged_files):
            zf.writestr(relative, dump_canonical(ctx.merged_files[relative]))
        zf.writestr("changelog.txt", changelog)

        icon = base_dir / config.icon_file
        if icon.is_file():
            zf.write(icon, config.icon_file)
            logger.info(f"Added {config.icon_file}")
        else:
            logger.warning(f"{config.icon_file} not found, skipping icon.")


def build_pack(config: LangPackConfig, version: str, base_dir: Path = Path(".")) -> int:
    version = version.strip()
    mods_dir = base_dir / config.mods_folder
    dist_dir = base_dir / config.dist_folder
    pack_name = f"{config.pack.file_prefix}_v{version}"

    logger.info(f"Building pack {pack_name}...")

    registry = ModRegistry(base_dir / config.mods_file)
    try:
        registry.load()
    except LoadError as e:
        logger.warning(f"{e} - mod versions will be 'unknown'")

    ctx = BuildContext(version)
    if mods_dir.is_dir():
        for mod_folder in sorted(p for p in mods_dir.iterdir() if p.is_dir()):
            try:
                scan_mod(config, ctx, registry, mod_folder)
            except Exception as e:
                logger.error(f"{mod_folder.name}: {e}")
                ctx.skipped.append(mod_folder.name)
    else:
        logger.warning(f"Mods folder {mods_dir} not found")

    history_path = dist_dir / config.build_history_file
    try:
        history = BuildHistory.load(history_path)
    except HistoryLoadError as e:
        logger.warning(f"{e} - changelog is computed without a previous build and history will not be updated")
        history = None

    complete = ctx.complete
    incomplete = ctx.incomplete
    changes = classify(complete, history.latest if history else None)
    short_report, long_report = render_reports(config.pack.name, version, complete, incomplete, changes)

    dist_dir.mkdir(parents=True, exist_ok=True)
    changelog_path = dist_dir / f"changelog_{version}.txt"
    with open(changelog_path, "w", encoding="utf-8", newline="") as f:
        f.write(long_report)

    zip_path = dist_dir / f"{pack_name}.zip"
    logger.info("Creating ZIP...")
    write_archive(zip_path, config, ctx, short_report, base_dir)

    if history is not None:
        history.prepend(new_entry(version, complete))
        try:
            history.save()
            logger.info(f"Build history saved to {config.build_history_file}")
        except OSError as e:
            logger.warning(f"Failed to save build history: {e}")

    logger.info(f"Built pack: {zip_path}")
    logger.info(f"Changelog: {changelog_path}")
    if complete:
        logger.info(f"Complete mods ({len(complete)}):")
        for stat in complete:
            logger.info(f"   - {stat.name}: {stat.translated}/{stat.total} translated")
    if incomplete:
        logger.warning(f"Incomplete mods ({len(incomplete)}):")
        for stat in incomplete:
            logger.warning(f"   - {stat.name}: {stat.translated}/{stat.total} translated")
    if ctx.skipped:
        logger.warning(f"Skipped mods ({len(ctx.skipped)}): {', '.join(ctx.skipped)}")
    return 0
