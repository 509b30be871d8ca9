"""
Texture metadata extraction (read-only, never modifies the file).

Reads size, pixel mode and container format via Pillow plus the file size on
disk, and flags non-power-of-two (NPOT) dimensions. Used by the library page
and by log lines; failures never propagate.
"""
import os

from PIL import Image

from reduction_policy import is_power_of_two, size_estimate


def extract_metadata(image_path: str) -> dict:
    """
    Inspect a texture file.

    Returns a dict with zero or more of the following keys:
        width, height  — pixel dimensions
        mode           — Pillow mode, e.g. "RGBA"
        format         — container format, e.g. "PNG"
        file_bytes     — size on disk
        memory_bytes   — in-memory size estimate used for savings reports
        npot           — True when either side is not a power of two
    """
    result: dict = {}
    try:
        result["file_bytes"] = os.path.getsize(image_path)
    except OSError:
        pass

    try:
        with Image.open(image_path) as image:
            width, height = image.size
            result["width"]  = width
            result["height"] = height
            result["mode"]   = image.mode
            result["format"] = image.format or ""
    except (OSError, ValueError, Image.DecompressionBombError):
        return result  # not an image, or unreadable; keep what we have

    result["memory_bytes"] = size_estimate(width, height)
    result["npot"]         = not (is_power_of_two(width) and is_power_of_two(height))
    return result
