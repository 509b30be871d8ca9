"""
Texture library: a folder tree of texture files on disk.

Every texture may carry a sidecar `<file>.texture.json` holding its import data
and settings:

    {
        "source_file": "../source/rock_albedo.tif",   # relative to the texture's folder
        "lod_bias":    2
    }

The sidecar is what a mip bias is written to (the texture file itself is never
touched), and `source_file` is what a proportional re-encode reads from.
"""
import dataclasses
import json
import logging
import os
from dataclasses import dataclass
from typing import Iterable, Optional

from PIL import Image

from image_processor import open_image, read_size, resize_image, save_image

logger = logging.getLogger(__name__)

# Pillow refuses images over twice Image.MAX_IMAGE_PIXELS with its own error type
_IMAGE_ERRORS = (OSError, ValueError, Image.DecompressionBombError)

TEXTURE_EXTENSIONS = {"png", "jpg", "jpeg", "tga", "bmp", "webp", "tif", "tiff"}
SIDECAR_SUFFIX     = ".texture.json"


class TextureError(RuntimeError):
    """A texture or its sidecar could not be read or written."""


@dataclass(frozen=True)
class Texture:
    name:        str
    path:        str
    width:       int
    height:      int
    source_file: Optional[str] = None   # absolute path, as declared in the sidecar
    lod_bias:    int = 0


# ── Sidecar ───────────────────────────────────────────────────────────────────

def sidecar_path(texture_path: str) -> str:
    return texture_path + SIDECAR_SUFFIX


def read_sidecar(texture_path: str) -> dict:
    path = sidecar_path(texture_path)
    if not os.path.exists(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise TextureError(f"Unreadable sidecar {path}: {e}") from e
    if not isinstance(data, dict):
        raise TextureError(f"Sidecar {path} must contain a JSON object")
    return data


def write_sidecar(texture_path: str, data: dict) -> None:
    path = sidecar_path(texture_path)
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
            f.write("\n")
    except OSError as e:
        raise TextureError(f"Cannot write sidecar {path}: {e}") from e


def _resolve_source(texture_path: str, source: str) -> str:
    if os.path.isabs(source):
        return source
    return os.path.normpath(os.path.join(os.path.dirname(texture_path), source))


# ── Loading & discovery ───────────────────────────────────────────────────────

def is_texture_file(path: str) -> bool:
    return "." in path and path.rsplit(".", 1)[1].lower() in TEXTURE_EXTENSIONS


def load_texture(path: str) -> Texture:
    path = os.path.abspath(path)
    try:
        width, height = read_size(path)
    except _IMAGE_ERRORS as e:
        raise TextureError(f"Cannot read texture {path}: {e}") from e

    sidecar  = read_sidecar(path)
    source   = sidecar.get("source_file") or None
    lod_bias = sidecar.get("lod_bias", 0)
    if not isinstance(lod_bias, int) or lod_bias < 0:
        raise TextureError(f"Invalid lod_bias {lod_bias!r} in {sidecar_path(path)}")
    if source is not None and not isinstance(source, str):
        raise TextureError(f"Invalid source_file {source!r} in {sidecar_path(path)}")

    return Texture(
        name=os.path.splitext(os.path.basename(path))[0],
        path=path,
        width=width,
        height=height,
        source_file=_resolve_source(path, source) if source else None,
        lod_bias=lod_bias,
    )


def _walk(folder: str, recursive: bool) -> Iterable[str]:
    if not recursive:
        for entry in sorted(os.listdir(folder)):
            yield os.path.join(folder, entry)
        return
    for root, dirs, files in os.walk(folder):
        dirs[:] = sorted(d for d in dirs if not d.startswith("."))
        for name in sorted(files):
            yield os.path.join(root, name)


def find_textures(paths: Iterable[str], recursive: bool = True) -> list[Texture]:
    """
    Expand files and folders into texture assets.

    Non-texture files are ignored, duplicates collapse, the result is sorted by
    path. Unreadable textures are skipped with a warning.
    """
    candidates: set[str] = set()
    for path in paths:
        if os.path.isdir(path):
            candidates.update(
                os.path.abspath(p) for p in _walk(path, recursive)
                if os.path.isfile(p) and is_texture_file(p)
            )
        elif os.path.isfile(path) and is_texture_file(path):
            candidates.add(os.path.abspath(path))
        else:
            logger.warning("Skipping %s: not a texture file or folder", path)

    textures = []
    for path in sorted(candidates):
        try:
            textures.append(load_texture(path))
        except TextureError as e:
            logger.warning("Skipping %s: %s", path, e)
    return textures


def list_folders(root: str) -> list[str]:
    """All sub-folders of `root` (including root itself), relative to root."""
    folders = ["."]
    for current, dirs, _files in os.walk(root):
        dirs[:] = sorted(d for d in dirs if not d.startswith("."))
        for d in dirs:
            folders.append(os.path.relpath(os.path.join(current, d), root))
    return folders


# ── Mutation ──────────────────────────────────────────────────────────────────

def source_file_exists(texture: Texture) -> bool:
    return bool(texture.source_file) and os.path.isfile(texture.source_file)


def apply_lod_bias(texture: Texture, bias: int) -> Texture:
    """Record `bias` in the texture's sidecar; the texture file is left as is."""
    data = read_sidecar(texture.path)
    data["lod_bias"] = bias
    write_sidecar(texture.path, data)
    return dataclasses.replace(texture, lod_bias=bias)


def reimport(texture: Texture, width: int, height: int) -> Texture:
    """
    Re-encode the texture from its source file at width × height, overwriting
    the texture file. Any mip bias is reset since the stored size changed.
    """
    if not source_file_exists(texture):
        raise TextureError(f"Source file not found for {texture.name}")

    try:
        image = open_image(texture.source_file)
        save_image(resize_image(image, width, height), texture.path)
    except _IMAGE_ERRORS as e:
        raise TextureError(f"Re-encode of {texture.name} failed: {e}") from e

    data = read_sidecar(texture.path)
    if data.get("lod_bias"):
        data["lod_bias"] = 0
        write_sidecar(texture.path, data)
    return dataclasses.replace(texture, width=width, height=height, lod_bias=0)
