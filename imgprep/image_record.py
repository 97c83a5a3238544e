"""
ImageRecord - Derived asset metadata for a single processed image.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ImageRecord:
    """
    Derived assets and dimensions for one image.

    Attributes:
        full_path: Full-size JPEG (the source itself, or its normalized copy)
        thumb_path: Grid thumbnail
        display_path: Slide image, only set when one was generated
        width: Width of the display image if generated, else of the source
        height: Height of the display image if generated, else of the source
        tiles: Tile pyramid directory, only set when tiles were generated
        max_width: Source width, only set when tiles were generated
        max_height: Source height, only set when tiles were generated
    """
    full_path: str
    thumb_path: str
    width: int
    height: int
    display_path: Optional[str] = None
    tiles: Optional[str] = None
    max_width: Optional[int] = None
    max_height: Optional[int] = None

    # Serialized key order
    FIELD_ORDER = (
        'full_path',
        'thumb_path',
        'display_path',
        'width',
        'height',
        'tiles',
        'max_width',
        'max_height',
    )
    OPTIONAL_FIELDS = ('display_path', 'tiles', 'max_width', 'max_height')

    @property
    def has_display(self) -> bool:
        return bool(self.display_path)

    @property
    def has_tiles(self) -> bool:
        return bool(self.tiles)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization, omitting unset optional fields."""
        data = {}
        for name in self.FIELD_ORDER:
            value = getattr(self, name)
            if name in self.OPTIONAL_FIELDS and not value:
                continue
            data[name] = value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'ImageRecord':
        """Create from dictionary."""
        return cls(
            full_path=data['full_path'],
            thumb_path=data['thumb_path'],
            width=data['width'],
            height=data['height'],
            display_path=data.get('display_path'),
            tiles=data.get('tiles'),
            max_width=data.get('max_width'),
            max_height=data.get('max_height'),
        )

    def format_status(self, name: str) -> str:
        """
        Format a human-readable status line.

        Returns:
            Status string like "photo - 1500x1000, display, tiles (6000x4000)"
        """
        parts = [f"{self.width}x{self.height}"]
        if self.has_display:
            parts.append("display")
        if self.has_tiles:
            parts.append(f"tiles ({self.max_width}x{self.max_height})")
        return f"{name} - {', '.join(parts)}"
