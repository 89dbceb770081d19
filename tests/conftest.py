import io
import struct
import zlib

import pytest
from PIL import Image

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def make_chunk(chunk_type: bytes, data: bytes) -> bytes:
    crc = zlib.crc32(chunk_type + data) & 0xFFFFFFFF
    return struct.pack(">I", len(data)) + chunk_type + data + struct.pack(">I", crc)


def make_png(*chunks: bytes) -> bytes:
    return PNG_SIGNATURE + b"".join(chunks)


@pytest.fixture(autouse=True)
def _isolated_logs(tmp_path, monkeypatch):
    monkeypatch.setenv("BANANA_PRO_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def chunk():
    return make_chunk


@pytest.fixture
def p0():
    """签名 + IHDR(13 字节占位数据) + IEND"""
    ihdr = make_chunk(b"IHDR", bytes(range(13)))
    iend = make_chunk(b"IEND", b"")
    return make_png(ihdr, iend)


def _encode_image(mode: str, size=(8, 6), color=(200, 120, 40), fmt="PNG") -> bytes:
    img = Image.new(mode, size, color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def real_png():
    return _encode_image("RGB")


@pytest.fixture
def real_jpeg():
    return _encode_image("RGB", fmt="JPEG")


@pytest.fixture
def image_file(tmp_path):
    """写一个图片文件并返回路径"""
    def _write(name: str, fmt: str = "PNG", mode: str = "RGB") -> str:
        path = tmp_path / name
        color = {"P": 3, "L": 120, "CMYK": (10, 200, 30, 0)}.get(mode, (10, 200, 30))
        path.write_bytes(_encode_image(mode, color=color, fmt=fmt))
        return str(path)
    return _write
