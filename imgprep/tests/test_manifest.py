"""
Tests for DirectoryManifest.
"""

import json
import os

import pytest

from imgprep.errors import ManifestWriteError
from imgprep.image_record import ImageRecord
from imgprep.manifest import DirectoryManifest


def record(name, directory='/p', **extra):
    return ImageRecord(
        full_path=f'{directory}/{name}.jpg',
        thumb_path=f'{directory}/{name}-thumbnail.jpg',
        width=100,
        height=50,
        **extra
    )


class TestDirectoryManifest:
    """Tests for DirectoryManifest."""

    def test_path(self):
        """Test the manifest lives inside its directory."""
        manifest = DirectoryManifest('/photos/trip')
        assert manifest.path == '/photos/trip/images.json'

    def test_custom_manifest_name(self):
        """Test a custom manifest file name."""
        manifest = DirectoryManifest('/photos', manifest_name='index.json')
        assert manifest.path == '/photos/index.json'

    def test_add_record(self):
        """Test adding and replacing records."""
        manifest = DirectoryManifest('/p')
        manifest.add_record('a', record('a'))
        manifest.add_record('a', record('a', display_path='/p/a-display.jpg'))

        assert manifest.total_images == 1
        assert manifest.records['a'].has_display

    def test_to_dict_sorted_by_name(self):
        """Test serialization order does not depend on insertion order."""
        manifest = DirectoryManifest('/p')
        for name in ('zebra', 'apple', 'mango'):
            manifest.add_record(name, record(name))

        assert list(manifest.to_dict()) == ['apple', 'mango', 'zebra']

    def test_empty_manifest(self):
        """Test an empty manifest serializes to an empty object."""
        assert DirectoryManifest('/p').to_dict() == {}

    def test_save_and_load(self, tmp_path):
        """Test writing and reading back a manifest."""
        directory = str(tmp_path)
        manifest = DirectoryManifest(directory)
        manifest.add_record('b', record('b', directory))
        manifest.add_record('a', record('a', directory, tiles=f'{directory}/a_files',
                                        max_width=5000, max_height=4000))

        path = manifest.save()

        assert path == os.path.join(directory, 'images.json')
        with open(path) as f:
            data = json.load(f)
        assert list(data) == ['a', 'b']
        assert data['a']['max_width'] == 5000
        assert 'display_path' not in data['a']

        loaded = DirectoryManifest.load(directory)
        assert loaded.to_dict() == manifest.to_dict()

    def test_save_replaces_existing(self, tmp_path):
        """Test an existing manifest is replaced and no temporary file is left."""
        directory = str(tmp_path)
        (tmp_path / 'images.json').write_text('{"stale": {}}')

        DirectoryManifest(directory).save()

        assert json.loads((tmp_path / 'images.json').read_text()) == {}
        assert os.listdir(directory) == ['images.json']

    def test_save_is_deterministic(self, tmp_path):
        """Test saving the same records twice gives identical bytes."""
        directory = str(tmp_path)
        manifest = DirectoryManifest(directory)
        manifest.add_record('a', record('a', directory))

        manifest.save()
        first = (tmp_path / 'images.json').read_bytes()
        manifest.save()
        second = (tmp_path / 'images.json').read_bytes()

        assert first == second
        assert first.endswith(b'\n')

    def test_save_missing_directory(self, tmp_path):
        """Test a write failure raises ManifestWriteError."""
        missing = str(tmp_path / 'gone')
        manifest = DirectoryManifest(missing)

        with pytest.raises(ManifestWriteError) as exc_info:
            manifest.save()

        assert exc_info.value.directory == missing

    def test_save_failure_removes_temporary_file(self, tmp_path, mocker):
        """Test a failed rename leaves nothing behind."""
        mocker.patch('imgprep.manifest.os.replace', side_effect=OSError('disk full'))
        manifest = DirectoryManifest(str(tmp_path))

        with pytest.raises(ManifestWriteError):
            manifest.save()

        assert os.listdir(str(tmp_path)) == []
