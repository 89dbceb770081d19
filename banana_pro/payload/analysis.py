"""
分析结果（双语）
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

ANALYSIS_FIELDS = (
    "style",
    "materials",
    "lighting",
    "context",
    "composition",
    "generationPrompt",
    "sketchPrompt",
    "multiViewPrompts",
)

# BananaProData 字段 -> 分析字段
PAYLOAD_TO_ANALYSIS = {
    "mega": "generationPrompt",
    "lighting": "lighting",
    "scene": "context",
    "view": "composition",
}


@dataclass
class BilingualText:
    en: str = ""
    vi: str = ""

    def get(self, lang: str) -> str:
        return self.vi if lang == "vi" else self.en

    def to_dict(self) -> Dict[str, str]:
        return {"en": self.en, "vi": self.vi}

    @classmethod
    def from_value(cls, value: Any) -> "BilingualText":
        """接受 {"en":..,"vi":..} 或单个字符串（视为英文）"""
        if isinstance(value, cls):
            return value
        if isinstance(value, dict):
            return cls(en=str(value.get("en") or ""), vi=str(value.get("vi") or ""))
        if value is None:
            return cls()
        return cls(en=str(value))


class AnalysisResult:
    """分析状态，未知字段原样保留"""

    def __init__(self, fields: Optional[Dict[str, BilingualText]] = None):
        self._fields: Dict[str, BilingualText] = dict(fields or {})

    def __contains__(self, key: str) -> bool:
        return key in self._fields

    def __getitem__(self, key: str) -> BilingualText:
        return self._fields[key]

    def get(self, key: str) -> Optional[BilingualText]:
        return self._fields.get(key)

    def get_en(self, key: str) -> str:
        item = self._fields.get(key)
        return item.en if item else ""

    def set_field(self, key: str, value: Any):
        self._fields[key] = BilingualText.from_value(value)

    def set_en(self, key: str, text: str):
        """只更新英文，保留已有的越南语"""
        item = self._fields.setdefault(key, BilingualText())
        item.en = text

    def keys(self) -> List[str]:
        return list(self._fields.keys())

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {k: v.to_dict() for k, v in self._fields.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        result = cls()
        for key, value in (data or {}).items():
            if isinstance(value, (dict, str)):
                result.set_field(key, value)
        return result


def populate_from_payload(analysis: Optional[AnalysisResult], data: Dict[str, Any]) -> AnalysisResult:
    """把 BananaProData 的 mega/lighting/scene/view 写回分析结果（仅英文，空值忽略）"""
    if analysis is None:
        analysis = AnalysisResult()
    for payload_key, field in PAYLOAD_TO_ANALYSIS.items():
        value = data.get(payload_key) if isinstance(data, dict) else None
        if value:
            analysis.set_en(field, str(value))
    return analysis


def format_multi_view(angles: List[Dict[str, Any]]) -> str:
    """多视角提示词列表 -> 文本块"""
    blocks = []
    for item in angles or []:
        blocks.append(
            f"===ANGLE: {item.get('angle', '')}===\n"
            f"[CONTENT]: {item.get('content', '')}\n"
            f"[COMPOSITION]: {item.get('composition', '')}\n"
            f"[LIGHTING]: {item.get('lighting', '')}"
        )
    return "\n\n".join(blocks)
