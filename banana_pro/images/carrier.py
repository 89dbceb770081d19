"""
载体图片：任意 Pillow 可读格式 -> 干净的 PNG 字节
"""

import io
import os
from typing import Union

from PIL import Image as PILImage

from ..pnginfo.chunks import PNG_SIGNATURE

# 支持的图片格式
SUPPORTED_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.webp', '.bmp', '.gif')

INFO_FILENAME_PREFIX = "BananaPro_Info_"


def is_supported_image(file_path: str) -> bool:
    return file_path.lower().endswith(SUPPORTED_EXTENSIONS)


def is_png(data: bytes) -> bool:
    return bytes(data[:len(PNG_SIGNATURE)]) == PNG_SIGNATURE


def read_image_bytes(file_path: str) -> bytes:
    """读取图片文件字节"""
    if not os.path.isfile(file_path):
        raise FileNotFoundError(f"图片不存在: {file_path}")
    with open(file_path, 'rb') as f:
        return f.read()


def open_image(source: Union[str, bytes]) -> PILImage.Image:
    """从路径或字节打开图片（已完成解码）"""
    if isinstance(source, (bytes, bytearray)):
        img = PILImage.open(io.BytesIO(bytes(source)))
    else:
        img = PILImage.open(source)
    img.load()
    return img


def to_png_bytes(source: Union[str, bytes]) -> bytes:
    """
    重新编码为 PNG，去掉原有的元数据块。

    Args:
        source: 图片路径或字节

    Returns:
        bytes: PNG 字节
    """
    img = open_image(source)
    if img.mode not in ("RGB", "RGBA", "L", "LA"):
        has_alpha = img.mode.endswith("A") or (img.mode == "P" and "transparency" in img.info)
        img = img.convert("RGBA" if has_alpha else "RGB")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def info_filename(source_name: str) -> str:
    """BananaPro_Info_<首个点号之前的文件名>.png"""
    base = os.path.basename(source_name or "")
    stem = base.split('.')[0] or "image"
    return f"{INFO_FILENAME_PREFIX}{stem}.png"
