"""
PNG 块结构：长度(4, 大端) | 类型(4) | 数据(长度) | CRC(4, 大端)
"""

import struct
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from .crc import crc32

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
PNG_MAGIC = 0x89504E47  # 签名前 4 字节
SIGNATURE_SIZE = len(PNG_SIGNATURE)
CHUNK_HEADER_SIZE = 8   # 长度 + 类型
CHUNK_CRC_SIZE = 4

TEXT_CHUNK = b"tEXt"
HEADER_CHUNK = b"IHDR"
END_CHUNK = b"IEND"


class TruncatedChunkError(ValueError):
    """声明的块长度超出缓冲区"""

    def __init__(self, offset: int, length: int, size: int):
        super().__init__(f"块越界: offset={offset}, length={length}, buffer={size}")
        self.offset = offset
        self.length = length
        self.size = size


@dataclass(frozen=True)
class Chunk:
    offset: int
    length: int
    type: bytes
    data: bytes
    crc: int

    @property
    def end(self) -> int:
        """块之后的偏移（即下一个块的起点）"""
        return self.offset + CHUNK_HEADER_SIZE + self.length + CHUNK_CRC_SIZE

    @property
    def type_name(self) -> str:
        return self.type.decode("latin-1")

    def is_crc_valid(self) -> bool:
        return self.crc == crc32(self.type + self.data)


def has_png_magic(png: bytes) -> bool:
    """只比较签名前 4 字节 (137, 80, 78, 71)"""
    if len(png) < 4:
        return False
    return struct.unpack(">I", bytes(png[:4]))[0] == PNG_MAGIC


def read_chunk_header(png: bytes, offset: int) -> Optional[Tuple[int, bytes]]:
    """读取 offset 处的 (长度, 类型)，不足 8 字节返回 None"""
    if offset + CHUNK_HEADER_SIZE > len(png):
        return None
    length, ctype = struct.unpack(">I4s", bytes(png[offset:offset + CHUNK_HEADER_SIZE]))
    return length, ctype


def iter_chunks(png: bytes, offset: int = SIGNATURE_SIZE) -> Iterator[Chunk]:
    """
    从 offset 开始逐块遍历，不校验 CRC。

    剩余字节不足一个块头时结束；声明长度越界时抛出 TruncatedChunkError。
    遇到 IEND 块时在产出后停止。
    """
    size = len(png)
    while offset < size:
        header = read_chunk_header(png, offset)
        if header is None:
            return
        length, ctype = header
        data_start = offset + CHUNK_HEADER_SIZE
        data_end = data_start + length
        if data_end + CHUNK_CRC_SIZE > size:
            raise TruncatedChunkError(offset, length, size)
        crc = struct.unpack(">I", bytes(png[data_end:data_end + CHUNK_CRC_SIZE]))[0]
        chunk = Chunk(offset, length, ctype, bytes(png[data_start:data_end]), crc)
        yield chunk
        if ctype == END_CHUNK:
            return
        offset = chunk.end


def build_chunk(chunk_type: bytes, data: bytes) -> bytes:
    """序列化一个块，CRC 覆盖 类型 + 数据"""
    if len(chunk_type) != 4:
        raise ValueError(f"块类型必须是 4 字节: {chunk_type!r}")
    crc = crc32(chunk_type + data)
    return struct.pack(">I", len(data)) + chunk_type + data + struct.pack(">I", crc)


def build_text_data(keyword: str, text: str) -> bytes:
    return keyword.encode("utf-8") + b"\x00" + text.encode("utf-8")


def build_text_chunk(keyword: str, text: str) -> bytes:
    """tEXt 块：关键字 + 0x00 + 正文，均为 UTF-8"""
    return build_chunk(TEXT_CHUNK, build_text_data(keyword, text))


def split_text_data(data: bytes) -> Optional[Tuple[str, str]]:
    """在第一个 0x00 处拆分为 (关键字, 正文)，没有分隔符返回 None"""
    null_pos = data.find(b"\x00")
    if null_pos < 0:
        return None
    keyword = data[:null_pos].decode("utf-8", errors="replace")
    text = data[null_pos + 1:].decode("utf-8", errors="replace")
    return keyword, text
