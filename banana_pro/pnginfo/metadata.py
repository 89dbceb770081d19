import json
from typing import Union

from .codec import EncodeStatus, decode_png_text, encode_png_text
from .keywords import PayloadKeyword


def dumps_info(info: dict) -> str:
    """紧凑 JSON，保留非 ASCII 字符"""
    return json.dumps(info, ensure_ascii=False, separators=(",", ":"))


def embed_info_to_png(png_bytes: bytes, info: dict,
                      keyword: Union[PayloadKeyword, str] = PayloadKeyword.BANANA_PRO) -> bytes:
    """把 dict 序列化为 JSON 写入 tEXt 块；失败时原样返回并打印原因"""
    if isinstance(keyword, PayloadKeyword):
        keyword = keyword.value
    result = encode_png_text(png_bytes, keyword, dumps_info(info))
    if result.status == EncodeStatus.NOT_PNG:
        print("❌ 不是有效的 PNG，跳过写入元数据")
    elif result.status == EncodeStatus.NO_IHDR:
        print("❌ PNG 中找不到 IHDR 块，跳过写入元数据")
    return result.data


def extract_info_from_png(png_bytes: bytes) -> dict:
    """读取 JSON 元数据；没有或不是 JSON 对象时返回空 dict"""
    result = decode_png_text(png_bytes)
    if not result.found:
        return {}
    try:
        data = json.loads(result.text)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
