import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from rich.progress import Progress

from .atlas import AtlasSource
from .errors import NoSpritesFound, ReadabilityRequired, SpriteExportError
from .exporter import AtlasExporter
from .extraction import extract_all
from .merge import MergeContext, MergeGroup, group_sprites, render_group
from .metadata import SpriteRect

logger = logging.getLogger(__name__)


@dataclass
class SplitSettings:
    output_dir: str
    format: str = "png"
    strategy: str = "single-hop"
    duplicate_policy: str = "error"
    origin: str = "top-left"
    grid_size: Optional[Tuple[int, int]] = None
    create_output_dir: bool = True
    metadata: bool = False
    debug: bool = False
    log_file: str = "sprite_export.log"


@dataclass
class RunReport:
    groups: List[MergeGroup] = field(default_factory=list)
    exported: Dict[str, Path] = field(default_factory=dict)
    sprite_failures: List[Tuple[str, SpriteExportError]] = field(default_factory=list)
    group_failures: List[Tuple[str, SpriteExportError]] = field(default_factory=list)

    @property
    def merged_count(self) -> int:
        return sum(len(g.followers) for g in self.groups)

    @property
    def failures(self) -> List[Tuple[str, SpriteExportError]]:
        return self.sprite_failures + self.group_failures


def run_export(
    atlas: AtlasSource,
    sprites: Mapping[str, SpriteRect],
    settings: SplitSettings,
    progress: Optional[Progress] = None,
) -> RunReport:
    """Extract, merge and export every sprite of one atlas.

    Readability and empty input abort the whole run. Groups are formed from
    the full rect table; a group holding any sprite whose pixels could not be
    extracted is aborted, as is a group whose export fails. Other groups
    carry on and files already written are left in place.
    """
    if not atlas.ensure_readable():
        raise ReadabilityRequired("The atlas is not readable, cannot sample pixels")

    if not sprites:
        logger.warning("No sprites found for the selected atlas")
        raise NoSpritesFound("No sprites found for the selected atlas")

    exporter = AtlasExporter(settings.output_dir, settings.format, settings.create_output_dir)
    if settings.create_output_dir:
        exporter.create_output_directory()

    report = RunReport()
    atlas_pixels = atlas.pixels

    advance = None
    if progress is not None:
        task = progress.add_task("Extracting sprites...", total=len(sprites))
        advance = lambda: progress.update(task, advance=1)
    buffers, report.sprite_failures = extract_all(atlas_pixels, sprites, advance)

    failed = dict(report.sprite_failures)
    report.groups = group_sprites(sprites, settings.strategy, MergeContext())

    if progress is not None:
        task = progress.add_task("Exporting groups...", total=len(report.groups))
    for group in report.groups:
        broken = [name for name in group.names if name in failed]
        if broken:
            logger.error(
                f"Skipping group '{group.leader}': {', '.join(broken)} could not be extracted"
            )
            report.group_failures.append((group.leader, failed[broken[0]]))
        else:
            try:
                render_group(group, sprites, buffers)
                report.exported[group.leader] = exporter.export(group.leader, group.pixels)
            except SpriteExportError as e:
                logger.error(f"Failed to export group '{group.leader}': {e}")
                report.group_failures.append((group.leader, e))
        if progress is not None:
            progress.update(task, advance=1)

    logger.info(f"Exported {len(report.exported)} images to {settings.output_dir}")
    return report
