"""
BananaProData 载荷
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .analysis import AnalysisResult


@dataclass
class BananaPayload:
    """写入 PNG 的 BananaProData 载荷"""

    mega: str = ""
    lighting: str = ""
    scene: str = ""
    view: str = ""
    inpaint: str = ""
    inpaint_enabled: bool = False
    camera_projection: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """转换为 JSON 字段（键顺序固定）"""
        return {
            "mega": self.mega,
            "lighting": self.lighting,
            "scene": self.scene,
            "view": self.view,
            "inpaint": self.inpaint,
            "inpaintEnabled": self.inpaint_enabled,
            "cameraProjection": self.camera_projection,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BananaPayload":
        """从字典创建，缺失字段取默认值"""
        data = data or {}
        return cls(
            mega=str(data.get("mega") or ""),
            lighting=str(data.get("lighting") or ""),
            scene=str(data.get("scene") or ""),
            view=str(data.get("view") or ""),
            inpaint=str(data.get("inpaint") or ""),
            inpaint_enabled=bool(data.get("inpaintEnabled", False)),
            camera_projection=bool(data.get("cameraProjection", False)),
        )

    def to_json(self, indent: Optional[int] = None) -> str:
        if indent is None:
            return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent)

    @classmethod
    def from_json(cls, text: str) -> "BananaPayload":
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("BananaProData 必须是 JSON 对象")
        return cls.from_dict(data)

    @classmethod
    def from_analysis(cls, analysis: AnalysisResult) -> "BananaPayload":
        """取分析结果的英文部分"""
        return cls(
            mega=analysis.get_en("generationPrompt"),
            lighting=analysis.get_en("lighting"),
            scene=analysis.get_en("context"),
            view=analysis.get_en("composition"),
        )

    def is_empty(self) -> bool:
        return not self.mega
