"""Export the named sprites of an atlas image, merging sprites whose rects overlap."""
from .atlas import ArrayAtlas, AtlasSource, FileAtlas
from .errors import (
    DuplicateSpriteName,
    InvalidDimensions,
    InvalidSpriteName,
    MetadataError,
    NoSpritesFound,
    OutOfBounds,
    ReadabilityRequired,
    SpriteExportError,
)
from .exporter import AtlasExporter
from .extraction import extract, extract_all
from .geometry import Rect, intersect
from .merge import MergeContext, MergeGroup, blend, group_sprites, merge_sprites, render_group
from .metadata import SpriteRect, build_sprite_table, grid_rects, load_manifest
from .pipeline import RunReport, SplitSettings, run_export

__version__ = "0.1.0"
