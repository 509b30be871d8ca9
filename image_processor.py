"""Shared Pillow utilities used by the texture library and handlers."""
from PIL import Image, ImageOps

# Formats that cannot store an alpha channel
_NO_ALPHA_FORMATS = {"JPEG", "BMP"}


def open_image(path: str) -> Image.Image:
    image = Image.open(path)
    image = ImageOps.exif_transpose(image)
    image.load()
    return image


def save_image(image: Image.Image, path: str) -> None:
    """Save to `path`, dropping alpha when the target format cannot hold it."""
    fmt = Image.registered_extensions().get("." + path.rsplit(".", 1)[-1].lower())
    if fmt in _NO_ALPHA_FORMATS and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    image.save(path)


def read_size(path: str) -> tuple[int, int]:
    """Width and height without decoding pixel data."""
    with Image.open(path) as image:
        return image.size


def resize_image(image: Image.Image, width: int, height: int) -> Image.Image:
    """
    Return a resized copy using LANCZOS resampling (best downscale quality).
    If the image already has the requested size, the original object is returned.
    """
    if image.size == (width, height):
        return image
    return image.resize((width, height), Image.LANCZOS)
