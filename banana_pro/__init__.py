"""
Banana Pro - PNG 信息工具包

把视觉分析得到的提示词（BananaProData JSON）写入 PNG 的 tEXt 块并读回，
附带 Gemini 分析客户端、批量写入与 Web UI。
"""

__author__ = "Banana Pro Team"

from .core import __version__
from .pnginfo import (
    crc32, PayloadKeyword,
    EncodeStatus, EncodeResult, DecodeStatus, DecodeResult, TextEntry,
    encode_png_text, decode_png_text, decode_all, encode, decode,
    embed_info_to_png, extract_info_from_png,
)
from .pnginfo.batch import embed_payload_file, embed_payload_batch, scan_folder
from .payload import (
    BilingualText, AnalysisResult, BananaPayload,
    populate_from_payload, text_from_metadata, text_from_png, load_payload_from_png,
)
from .images import to_png_bytes, info_filename
from .keys import AdvancedKeyManager, load_api_keys_advanced
from .logging import install_log_tee, log_jsonl
from .analyzer import VisualAnalyzer, AnalysisError

__all__ = [
    "__version__",
    "crc32",
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
    "embed_payload_file",
    "embed_payload_batch",
    "scan_folder",
    "BilingualText",
    "AnalysisResult",
    "BananaPayload",
    "populate_from_payload",
    "text_from_metadata",
    "text_from_png",
    "load_payload_from_png",
    "to_png_bytes",
    "info_filename",
    "AdvancedKeyManager",
    "load_api_keys_advanced",
    "install_log_tee",
    "log_jsonl",
    "VisualAnalyzer",
    "AnalysisError",
]
