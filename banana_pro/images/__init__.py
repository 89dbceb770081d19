from .carrier import (
    SUPPORTED_EXTENSIONS,
    is_supported_image,
    is_png,
    read_image_bytes,
    open_image,
    to_png_bytes,
    info_filename,
)

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "is_supported_image",
    "is_png",
    "read_image_bytes",
    "open_image",
    "to_png_bytes",
    "info_filename",
]
