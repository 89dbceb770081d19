"""
批量写入 / 扫描 PNG 元数据
"""

import os
import tempfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Tuple, Union

from tqdm import tqdm

from ..images.carrier import info_filename, is_supported_image, read_image_bytes, to_png_bytes
from ..logging import log_jsonl
from ..payload.payload import BananaPayload
from .codec import DecodeResult, EncodeStatus, decode_png_text, encode_png_text
from .keywords import PayloadKeyword

BatchResult = Tuple[bool, str, Optional[str]]


def _atomic_write(output_path: str, data: bytes):
    # 每个任务独立的临时文件，写完再替换
    with tempfile.NamedTemporaryFile(dir=os.path.dirname(output_path) or ".",
                                     prefix=".embed_", suffix=".tmp", delete=False) as fp:
        temp_path = fp.name
        try:
            fp.write(data)
        except Exception:
            fp.close()
            os.remove(temp_path)
            raise
    os.replace(temp_path, output_path)


def unique_output_names(image_paths: List[str]) -> List[str]:
    """同名输出依次加 _1, _2 后缀"""
    used = set()
    names = []
    for path in image_paths:
        name = info_filename(path)
        stem, ext = os.path.splitext(name)
        n = 0
        while name.lower() in used:
            n += 1
            name = f"{stem}_{n}{ext}"
        used.add(name.lower())
        names.append(name)
    return names


def embed_payload_file(image_path: str,
                       payload: Union[BananaPayload, dict],
                       output_dir: str,
                       keyword: PayloadKeyword = PayloadKeyword.BANANA_PRO,
                       output_name: Optional[str] = None) -> BatchResult:
    """
    把载荷写入单张图片，默认输出 BananaPro_Info_<名称>.png

    Returns:
        Tuple[bool, str, Optional[str]]: (是否成功, 信息, 输出路径)
    """
    if isinstance(payload, dict):
        payload = BananaPayload.from_dict(payload)
    try:
        carrier = to_png_bytes(read_image_bytes(image_path))
    except Exception as e:
        log_jsonl({"event": "embed_error", "input": image_path, "reason": str(e)})
        return False, f"❌ 无法读取图片 ({e}): {image_path}", None

    result = encode_png_text(carrier, keyword.value, payload.to_json())
    if result.status != EncodeStatus.OK:
        log_jsonl({"event": "embed_error", "input": image_path, "reason": result.status.name})
        return False, f"❌ 写入失败 ({result.status.name}): {image_path}", None

    os.makedirs(output_dir, exist_ok=True)
    output_path = os.path.join(output_dir, output_name or info_filename(image_path))
    _atomic_write(output_path, result.data)
    log_jsonl({
        "event": "embed_complete",
        "input": image_path,
        "output": output_path,
        "bytes": len(result.data),
    })
    return True, f"✅ 成功: {output_path}", output_path


def embed_payload_batch(image_paths: List[str],
                        payload: Union[BananaPayload, dict],
                        output_dir: str,
                        *,
                        max_workers: int = 3,
                        keyword: PayloadKeyword = PayloadKeyword.BANANA_PRO) -> List[BatchResult]:
    """
    并发地把同一载荷写入多张图片

    Returns:
        List[BatchResult]: 与输入顺序一致的结果列表
    """
    if not image_paths:
        return []

    print(f"🚀 开始写入 {len(image_paths)} 张图片，并行度: {max_workers}")
    log_jsonl({"event": "embed_start", "total": len(image_paths), "max_workers": max_workers})

    output_names = unique_output_names(image_paths)
    results: List[Optional[BatchResult]] = [None] * len(image_paths)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_index = {
            executor.submit(embed_payload_file, path, payload, output_dir, keyword, output_names[i]): i
            for i, path in enumerate(image_paths)
        }
        with tqdm(total=len(image_paths), desc="embed", unit="img") as bar:
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    results[index] = future.result()
                except Exception as e:
                    results[index] = (False, f"❌ 任务异常: {image_paths[index]} - {e}", None)
                tqdm.write(results[index][1])
                bar.update(1)

    completed = sum(1 for ok, _, _ in results if ok)
    failed = len(results) - completed
    log_jsonl({"event": "embed_batch_complete", "completed": completed, "failed": failed, "total": len(results)})
    print(f"📊 批量写入完成: 成功 {completed}, 失败 {failed}, 总计 {len(results)}")
    return results


def scan_folder(directory: str, *, recursive: bool = False) -> Dict[str, DecodeResult]:
    """读取目录中所有图片的内嵌数据"""
    if not os.path.isdir(directory):
        raise ValueError(f"Directory '{directory}' does not exist.")

    paths = []
    if recursive:
        for root, _, files in os.walk(directory):
            paths.extend(os.path.join(root, f) for f in files)
    else:
        paths = [os.path.join(directory, f) for f in os.listdir(directory)]

    found = {}
    for path in sorted(p for p in paths if os.path.isfile(p) and is_supported_image(p)):
        found[path] = decode_png_text(read_image_bytes(path))
    return found
