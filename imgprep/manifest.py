"""
DirectoryManifest - Per-directory mapping of image name to ImageRecord.
"""

import json
import os
import tempfile
from dataclasses import dataclass, field
from typing import Dict

from .errors import ManifestWriteError
from .image_record import ImageRecord

DEFAULT_MANIFEST_NAME = 'images.json'


@dataclass
class DirectoryManifest:
    """
    Records of every image processed in one source directory.

    Attributes:
        directory: Source directory the manifest describes
        records: Mapping of image base name -> ImageRecord
        manifest_name: File name of the manifest inside the directory
    """
    directory: str
    records: Dict[str, ImageRecord] = field(default_factory=dict)
    manifest_name: str = DEFAULT_MANIFEST_NAME

    @property
    def path(self) -> str:
        """Path of the manifest file."""
        return os.path.join(self.directory, self.manifest_name)

    @property
    def total_images(self) -> int:
        return len(self.records)

    def add_record(self, name: str, record: ImageRecord) -> None:
        """Add or replace the record for an image."""
        self.records[name] = record

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization, sorted by image name."""
        return {
            name: self.records[name].to_dict()
            for name in sorted(self.records)
        }

    @classmethod
    def from_dict(
        cls,
        directory: str,
        data: dict,
        manifest_name: str = DEFAULT_MANIFEST_NAME
    ) -> 'DirectoryManifest':
        """Create from dictionary."""
        return cls(
            directory=directory,
            records={name: ImageRecord.from_dict(record) for name, record in data.items()},
            manifest_name=manifest_name,
        )

    def save(self) -> str:
        """
        Write the manifest into its directory.

        The JSON is written to a temporary file next to the manifest and renamed
        over it, so readers never see a partially written file.

        Returns:
            Path of the written manifest

        Raises:
            ManifestWriteError: If the file could not be written
        """
        data = self.to_dict()
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                mode='w',
                dir=self.directory,
                prefix=f".{self.manifest_name}.",
                suffix='.tmp',
                delete=False,
            ) as f:
                tmp_path = f.name
                json.dump(data, f, indent=2)
                f.write('\n')
            os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise ManifestWriteError(self.directory, e) from e

        return self.path

    @classmethod
    def load(
        cls,
        directory: str,
        manifest_name: str = DEFAULT_MANIFEST_NAME
    ) -> 'DirectoryManifest':
        """Load the manifest stored in a directory."""
        path = os.path.join(directory, manifest_name)
        with open(path, 'r') as f:
            data = json.load(f)
        return cls.from_dict(directory, data, manifest_name=manifest_name)
