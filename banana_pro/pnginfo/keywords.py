"""
可识别的 tEXt 关键字
"""

from enum import Enum
from typing import Iterable, Optional, Tuple


class PayloadKeyword(Enum):
    """读取时认可的 tEXt 关键字"""
    PARAMETERS = "parameters"      # 其他工具（如 WebUI）写入的原始参数文本
    BANANA_PRO = "BananaProData"   # 本应用写入的 JSON 数据

    @property
    def is_json(self) -> bool:
        """正文是否按 JSON 处理"""
        return self is PayloadKeyword.BANANA_PRO

    @classmethod
    def lookup(cls, keyword: str) -> Optional["PayloadKeyword"]:
        """按关键字字符串查找，未识别返回 None"""
        for member in cls:
            if member.value == keyword:
                return member
        return None

    @classmethod
    def coerce(cls, keyword) -> "PayloadKeyword":
        if isinstance(keyword, cls):
            return keyword
        member = cls.lookup(keyword)
        if member is None:
            raise ValueError(f"未识别的关键字: {keyword}")
        return member


# 读取时默认接受的关键字，流中先出现的块先返回
DEFAULT_KEYWORDS: Tuple[PayloadKeyword, ...] = (PayloadKeyword.PARAMETERS, PayloadKeyword.BANANA_PRO)


def normalize_keywords(keywords: Optional[Iterable]) -> Tuple[PayloadKeyword, ...]:
    if keywords is None:
        return DEFAULT_KEYWORDS
    return tuple(PayloadKeyword.coerce(k) for k in keywords)
