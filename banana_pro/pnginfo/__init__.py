from .crc import crc32
from .chunks import Chunk, PNG_SIGNATURE, build_text_chunk, iter_chunks
from .keywords import PayloadKeyword
from .codec import (
    EncodeStatus, EncodeResult, DecodeStatus, DecodeResult, TextEntry,
    encode_png_text, decode_png_text, decode_all, encode, decode,
)
from .metadata import embed_info_to_png, extract_info_from_png

__all__ = [
    "crc32",
    "Chunk",
    "PNG_SIGNATURE",
    "build_text_chunk",
    "iter_chunks",
    "PayloadKeyword",
    "EncodeStatus",
    "EncodeResult",
    "DecodeStatus",
    "DecodeResult",
    "TextEntry",
    "encode_png_text",
    "decode_png_text",
    "decode_all",
    "encode",
    "decode",
    "embed_info_to_png",
    "extract_info_from_png",
]
