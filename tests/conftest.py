"""Shared fixtures: small on-disk texture libraries built with Pillow."""
import json
import os

import pytest
from PIL import Image


def _write_image(path, size, color=(200, 120, 40, 255)):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    image = Image.new("RGBA", size, color)
    if path.lower().endswith((".jpg", ".jpeg")):
        image = image.convert("RGB")
    image.save(path)


@pytest.fixture
def make_texture(tmp_path):
    """
    Factory: make_texture("props/crate.png", (1024, 512), source_size=(2048, 1024))

    Writes the texture under tmp_path/library. With `source_size`, a source file
    is written under tmp_path/sources and referenced from the sidecar by a
    relative path. `sidecar` adds/overrides raw sidecar keys.
    """
    library = tmp_path / "library"
    library.mkdir(exist_ok=True)

    def _make(rel_path, size, source_size=None, sidecar=None):
        path = str(library / rel_path)
        _write_image(path, size)

        data = {}
        if source_size is not None:
            src = str(tmp_path / "sources" / os.path.basename(rel_path))
            _write_image(src, source_size, color=(10, 200, 90, 255))
            data["source_file"] = os.path.relpath(src, os.path.dirname(path))
        if sidecar:
            data.update(sidecar)
        if data:
            with open(path + ".texture.json", "w", encoding="utf-8") as f:
                json.dump(data, f)
        return path

    return _make


@pytest.fixture
def library_dir(tmp_path):
    path = tmp_path / "library"
    path.mkdir(exist_ok=True)
    return path
