class SpriteExportError(Exception):
    """Base class for every condition raised while exporting sprites"""


class ReadabilityRequired(SpriteExportError):
    pass


class NoSpritesFound(SpriteExportError):
    pass


class OutOfBounds(SpriteExportError):
    def __init__(self, name: str, rect, atlas_size):
        self.name = name
        self.rect = rect
        self.atlas_size = atlas_size
        width, height = atlas_size
        super().__init__(
            f"Sprite '{name}' at ({rect.x}, {rect.y}, {rect.width}x{rect.height}) "
            f"exceeds atlas bounds {width}x{height}"
        )


class InvalidDimensions(SpriteExportError):
    pass


class DuplicateSpriteName(SpriteExportError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Duplicate sprite name: {name}")


class MetadataError(SpriteExportError):
    pass


class InvalidSpriteName(SpriteExportError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Sprite name cannot be used as an output path: {name!r}")
