"""
从 PNG 元数据中取出用于文字叠加的提示词
"""

import json
from typing import Optional

from ..pnginfo.codec import decode
from .analysis import AnalysisResult, populate_from_payload


def text_from_metadata(raw: Optional[str]) -> str:
    """
    优先级: mega -> generationPrompt.en -> view/scene/lighting 拼接。
    不是 JSON 时原样返回（WebUI 的 parameters 一般是纯文本）。
    """
    if not raw:
        return ""
    try:
        data = json.loads(raw)
    except ValueError:
        return raw
    if not isinstance(data, dict):
        return ""

    if data.get("mega"):
        return str(data["mega"])
    prompt = data.get("generationPrompt")
    if isinstance(prompt, dict) and prompt.get("en"):
        return str(prompt["en"])

    parts = [str(data[k]) for k in ("view", "scene", "lighting") if data.get(k)]
    return "\n\n".join(parts)


def text_from_png(png_bytes: bytes) -> str:
    return text_from_metadata(decode(png_bytes))


def load_payload_from_png(png_bytes: bytes, analysis: AnalysisResult) -> bool:
    """读取内嵌数据并填充分析结果，成功返回 True"""
    raw = decode(png_bytes)
    if not raw:
        return False
    try:
        data = json.loads(raw)
    except ValueError as e:
        print(f"⚠️ 内嵌数据不是 JSON: {e}")
        return False
    if not isinstance(data, dict):
        return False
    populate_from_payload(analysis, data)
    return True
