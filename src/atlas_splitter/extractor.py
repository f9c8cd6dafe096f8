#!/usr/bin/env python3

import argparse
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from .atlas import FileAtlas
from .errors import NoSpritesFound, SpriteExportError
from .exporter import FORMATS
from .merge import STRATEGIES
from .metadata import DUPLICATE_POLICIES, ORIGINS, SpriteRect, grid_rects, load_manifest
from .pipeline import RunReport, SplitSettings, run_export


class AtlasSplitter:
    def __init__(self, console: Console):
        self.console = console
        self.logger = logging.getLogger('atlas_splitter')

    def setup_logger(self, log_file: str, debug: bool = False) -> logging.Logger:
        logger = self.logger
        logger.setLevel(logging.DEBUG)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        # File handler
        fh = logging.FileHandler(log_file)
        fh.setLevel(logging.DEBUG)

        # Console handler
        ch = logging.StreamHandler()
        ch.setLevel(logging.DEBUG if debug else logging.ERROR)

        # Formatter
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        fh.setFormatter(formatter)
        ch.setFormatter(formatter)

        logger.addHandler(fh)
        logger.addHandler(ch)

        return logger

    def parse_arguments(self, argv: Optional[List[str]] = None) -> argparse.Namespace:
        parser = argparse.ArgumentParser(
            description="Export every named sprite of an atlas, merging sprites whose rects overlap.",
            formatter_class=argparse.ArgumentDefaultsHelpFormatter
        )

        # Required arguments
        parser.add_argument(
            "atlas_image",
            type=str,
            help="Path to the atlas image."
        )
        parser.add_argument(
            "output_dir",
            type=str,
            help="Directory to save the exported sprite images."
        )

        # Sprite sources
        parser.add_argument(
            "--sprites",
            type=str,
            help="JSON manifest with the named sprite rects of the atlas."
        )
        parser.add_argument(
            "--grid-size",
            type=int,
            nargs=2,
            metavar=('WIDTH', 'HEIGHT'),
            help="Slice the atlas into grid cells instead of reading a manifest."
        )

        # Optional arguments
        parser.add_argument(
            "--format",
            type=str,
            choices=FORMATS,
            default='png',
            help="Output format for exported images."
        )
        parser.add_argument(
            "--strategy",
            type=str,
            choices=STRATEGIES,
            default='single-hop',
            help="How overlapping sprites are grouped."
        )
        parser.add_argument(
            "--duplicates",
            type=str,
            choices=DUPLICATE_POLICIES,
            default='error',
            help="What to do when two sprites share a name."
        )
        parser.add_argument(
            "--origin",
            type=str,
            choices=ORIGINS,
            default='top-left',
            help="Corner the manifest's y coordinates are measured from."
        )
        parser.add_argument(
            "--no-create-dir",
            action="store_true",
            help="Do not create the output directory if it is missing."
        )
        parser.add_argument(
            "--metadata",
            action="store_true",
            help="Generate JSON metadata file with the exported groups."
        )
        parser.add_argument(
            "--log-file",
            type=str,
            default='sprite_export.log',
            help="File receiving the debug log."
        )
        parser.add_argument(
            "--debug",
            action="store_true",
            help="Enable debug mode with additional output."
        )

        args = parser.parse_args(argv)

        # Validate arguments
        if bool(args.sprites) == bool(args.grid_size):
            parser.error("exactly one of --sprites or --grid-size is required")

        if args.grid_size and min(args.grid_size) <= 0:
            parser.error("--grid-size values must be positive")

        return args

    def build_settings(self, args: argparse.Namespace) -> SplitSettings:
        return SplitSettings(
            output_dir=args.output_dir,
            format=args.format,
            strategy=args.strategy,
            duplicate_policy=args.duplicates,
            origin=args.origin,
            grid_size=tuple(args.grid_size) if args.grid_size else None,
            create_output_dir=not args.no_create_dir,
            metadata=args.metadata,
            debug=args.debug,
            log_file=args.log_file,
        )

    def load_sprites(self, args: argparse.Namespace, atlas: FileAtlas) -> Dict[str, SpriteRect]:
        if args.grid_size:
            sprites = grid_rects(atlas.pixels, tuple(args.grid_size), Path(args.atlas_image).stem)
            self.console.log(f"Sliced {len(sprites)} grid cells from {args.atlas_image}")
        else:
            sprites = load_manifest(args.sprites, atlas.height, args.origin, args.duplicates)
            self.console.log(f"Loaded {len(sprites)} sprite rects from {args.sprites}")
        return sprites

    def export_sprites(self, atlas: FileAtlas, sprites: Dict[str, SpriteRect],
                       settings: SplitSettings) -> RunReport:
        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            "[progress.percentage]{task.percentage:>3.0f}%",
            TimeElapsedColumn(),
            console=self.console
        ) as progress:
            return run_export(atlas, sprites, settings, progress)

    def save_metadata(self, report: RunReport, settings: SplitSettings) -> Optional[Path]:
        """Save exported group metadata to JSON file"""
        output_dir = Path(settings.output_dir)
        if not output_dir.is_dir():
            self.logger.warning(f"Output directory {output_dir} does not exist, metadata not saved")
            self.console.print(f"[yellow]Warning: {output_dir} does not exist, metadata not saved")
            return None

        metadata_file = output_dir / "sprites_metadata.json"
        exported = {
            name: path.relative_to(output_dir).as_posix()
            for name, path in report.exported.items()
        }
        metadata_dict = {
            "groups": [
                {
                    "leader": group.leader,
                    "followers": group.followers,
                    "x": group.rect.x,
                    "y": group.rect.y,
                    "width": group.rect.width,
                    "height": group.rect.height,
                    "filename": exported[group.leader],
                }
                for group in report.groups
                if group.leader in exported
            ],
            "total_files": len(report.exported),
            "failures": [
                {"name": name, "error": str(error)} for name, error in report.failures
            ],
            "settings": {
                "format": settings.format,
                "strategy": settings.strategy,
                "duplicate_policy": settings.duplicate_policy,
                "origin": settings.origin,
                "grid_size": list(settings.grid_size) if settings.grid_size else None,
            }
        }

        with open(metadata_file, 'w') as f:
            json.dump(metadata_dict, f, indent=2)

        self.console.log(f"[green]Saved metadata to {metadata_file}")
        return metadata_file

    def print_summary(self, report: RunReport):
        """Print export summary"""
        table = Table(title="Sprite Export Summary")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Groups", str(len(report.groups)))
        table.add_row("Files written", str(len(report.exported)))
        table.add_row("Sprites merged into others", str(report.merged_count))
        table.add_row("Failures", str(len(report.failures)))

        merged = [g for g in report.groups if g.followers]
        if merged:
            largest = max(merged, key=lambda g: len(g.followers))
            table.add_row("Largest group", f"{largest.leader} (+{len(largest.followers)})")

        self.console.print(table)

    def report_failures(self, report: RunReport) -> bool:
        if not report.failures:
            return True

        self.console.print(Panel(
            "\n".join(f"{name}: {error}" for name, error in report.failures),
            title="[yellow]Sprite Export Issues",
            border_style="yellow"
        ))
        return False


def main(argv: Optional[List[str]] = None) -> int:
    console = Console()
    splitter = AtlasSplitter(console)
    args = splitter.parse_arguments(argv)
    settings = splitter.build_settings(args)
    logger = splitter.setup_logger(settings.log_file, settings.debug)

    try:
        atlas = FileAtlas(args.atlas_image)
        if atlas.ensure_readable():
            console.log(f"[green]Loaded atlas: {args.atlas_image}")
            console.log(f"Shape: {atlas.pixels.shape}")

        console.print("[blue]Starting sprite export...")
        sprites = splitter.load_sprites(args, atlas)
        report = splitter.export_sprites(atlas, sprites, settings)

        splitter.report_failures(report)

        if settings.metadata:
            splitter.save_metadata(report, settings)

        splitter.print_summary(report)

        console.print(f"[green]Sprites saved successfully to: {settings.output_dir}")

    except NoSpritesFound as e:
        console.print(f"[yellow]Warning: {e}")
        return 1
    except SpriteExportError as e:
        console.print(f"[red]Error during sprite export: {e}")
        logger.error(str(e))
        return 1
    except Exception as e:
        console.print(f"[red]Error during sprite export: {str(e)}")
        logger.exception("Unhandled exception during sprite export")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
