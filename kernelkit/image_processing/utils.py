"""Conversions between Pillow images, RGBA buffers and rasters.

AIDEV-NOTE: Images always pass through RGBA on the way in and out. Alpha is
dropped when a raster is built and forced to 255 when one is exported.
"""

from pathlib import Path

from PIL import Image

from .raster import Raster


def image_to_raster(image: Image.Image, channel_count: int = 1) -> Raster:
    """Convert a PIL image to a raster.

    Args:
        image: Any PIL image; converted to RGBA first
        channel_count: 1 for intensity (RGB mean), 3 for color

    Returns:
        New Raster
    """
    if image.mode != "RGBA":
        image = image.convert("RGBA")
    width, height = image.size
    return Raster.from_rgba(image.tobytes(), width, height, channel_count)


def raster_to_image(raster: Raster) -> Image.Image:
    """Convert a raster to an opaque RGBA PIL image."""
    return Image.frombytes(
        "RGBA", (raster.width, raster.height), raster.to_rgba().tobytes()
    )


def load_image(file_path: str | Path, channel_count: int = 1) -> Raster:
    """Load an image file (PNG, JPG, etc.) as a raster.

    Raises:
        ValueError: If the file cannot be read as an image
    """
    try:
        with Image.open(file_path) as image:
            image.load()
            return image_to_raster(image, channel_count)
    except (OSError, Image.DecompressionBombError) as e:
        raise ValueError(f"Failed to load image: {e}") from e


def save_image(raster: Raster, file_path: str | Path) -> None:
    """Save a raster to disk; format follows the file extension."""
    image = raster_to_image(raster)
    if Path(file_path).suffix.lower() in (".jpg", ".jpeg", ".bmp"):
        # These formats have no alpha channel
        image = image.convert("RGB")
    image.save(file_path)
