"""
PNG tEXt 元数据编解码

编码：在 IHDR 块之后插入一个新的 tEXt 块，其余字节原样保留。
解码：遍历块，返回第一个关键字可识别的 tEXt 正文。

两者都是纯函数，不修改输入，失败以状态值返回而不抛异常。
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, List, NamedTuple, Optional

from .chunks import (
    CHUNK_CRC_SIZE,
    CHUNK_HEADER_SIZE,
    HEADER_CHUNK,
    SIGNATURE_SIZE,
    TEXT_CHUNK,
    TruncatedChunkError,
    build_text_chunk,
    has_png_magic,
    iter_chunks,
    read_chunk_header,
    split_text_data,
)
from .keywords import PayloadKeyword, normalize_keywords


class EncodeStatus(IntEnum):
    OK = 0
    NOT_PNG = 1   # 签名不匹配
    NO_IHDR = 2   # 找不到完整的 IHDR 块


class DecodeStatus(IntEnum):
    FOUND = 0
    NOT_FOUND = 1
    NOT_PNG = 2
    TRUNCATED = 3      # 声明长度越界
    CRC_MISMATCH = 4   # 仅在 verify_crc=True 时出现


@dataclass(frozen=True)
class EncodeResult:
    status: EncodeStatus
    data: bytes

    @property
    def ok(self) -> bool:
        return self.status == EncodeStatus.OK


@dataclass(frozen=True)
class DecodeResult:
    status: DecodeStatus
    text: Optional[str] = None
    keyword: Optional[PayloadKeyword] = None

    @property
    def found(self) -> bool:
        return self.status == DecodeStatus.FOUND


class TextEntry(NamedTuple):
    keyword: PayloadKeyword
    text: str


def _find_insertion_point(png: bytes) -> Optional[int]:
    """返回 IHDR 块 CRC 之后的偏移；找不到或 IHDR 不完整时返回 None"""
    pos = SIGNATURE_SIZE
    size = len(png)
    while pos < size:
        header = read_chunk_header(png, pos)
        if header is None:
            return None
        length, ctype = header
        end = pos + CHUNK_HEADER_SIZE + length + CHUNK_CRC_SIZE
        if ctype == HEADER_CHUNK:
            return end if end <= size else None
        pos = end
    return None


def encode_png_text(png: bytes, keyword: str, text: str) -> EncodeResult:
    """
    在 IHDR 之后插入 tEXt 块。

    Args:
        png: 原始 PNG 字节
        keyword: tEXt 关键字
        text: 正文（通常是 JSON 字符串）

    Returns:
        EncodeResult: 成功时 data 为新字节；失败时 data 为原输入
    """
    png = bytes(png)
    if not has_png_magic(png):
        return EncodeResult(EncodeStatus.NOT_PNG, png)

    insert_at = _find_insertion_point(png)
    if insert_at is None:
        return EncodeResult(EncodeStatus.NO_IHDR, png)

    chunk = build_text_chunk(keyword, text)
    return EncodeResult(EncodeStatus.OK, png[:insert_at] + chunk + png[insert_at:])


def _walk_text_entries(png: bytes, accepted, verify_crc: bool):
    """产出 (状态, 条目)；状态非 None 表示遍历异常终止"""
    try:
        for chunk in iter_chunks(png):
            if verify_crc and not chunk.is_crc_valid():
                yield DecodeStatus.CRC_MISMATCH, None
                return
            if chunk.type != TEXT_CHUNK:
                continue
            parts = split_text_data(chunk.data)
            if parts is None:
                continue
            member = PayloadKeyword.lookup(parts[0])
            if member is not None and member in accepted:
                yield None, TextEntry(member, parts[1])
    except TruncatedChunkError:
        yield DecodeStatus.TRUNCATED, None


def decode_png_text(png: bytes,
                    *,
                    keywords: Optional[Iterable] = None,
                    verify_crc: bool = False) -> DecodeResult:
    """
    查找第一个可识别关键字的 tEXt 正文。

    Args:
        png: PNG 字节
        keywords: 接受的关键字（PayloadKeyword 或其字符串），默认全部
        verify_crc: 是否校验每个块的 CRC

    Returns:
        DecodeResult
    """
    png = bytes(png)
    if not has_png_magic(png):
        return DecodeResult(DecodeStatus.NOT_PNG)

    accepted = normalize_keywords(keywords)
    for status, entry in _walk_text_entries(png, accepted, verify_crc):
        if status is not None:
            return DecodeResult(status)
        return DecodeResult(DecodeStatus.FOUND, entry.text, entry.keyword)
    return DecodeResult(DecodeStatus.NOT_FOUND)


def decode_all(png: bytes, *, keywords: Optional[Iterable] = None) -> List[TextEntry]:
    """按流中顺序返回所有可识别的 tEXt 条目；遇到越界块时返回已读到的部分"""
    png = bytes(png)
    if not has_png_magic(png):
        return []
    accepted = normalize_keywords(keywords)
    return [entry for status, entry in _walk_text_entries(png, accepted, False) if entry is not None]


def encode(png: bytes, keyword: str, text: str) -> bytes:
    """失败时原样返回输入"""
    return encode_png_text(png, keyword, text).data


def decode(png: bytes) -> Optional[str]:
    """找到返回正文，否则返回 None"""
    return decode_png_text(png).text
