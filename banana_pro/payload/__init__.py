from .analysis import (
    ANALYSIS_FIELDS, BilingualText, AnalysisResult,
    populate_from_payload, format_multi_view,
)
from .payload import BananaPayload
from .overlay_text import text_from_metadata, text_from_png, load_payload_from_png

__all__ = [
    "ANALYSIS_FIELDS",
    "BilingualText",
    "AnalysisResult",
    "populate_from_payload",
    "format_multi_view",
    "BananaPayload",
    "text_from_metadata",
    "text_from_png",
    "load_payload_from_png",
]
