#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
视觉分析客户端
调用 Gemini 分析参考图片，返回 JSON 结构的分析结果；配额 / 过载错误指数退避重试，
Key 失效时自动轮换。
"""

import os
import json
import time
import threading
from typing import List, Dict, Optional, Any, Union, Tuple
from concurrent.futures import ThreadPoolExecutor

try:
    import google.generativeai as genai
    from google.api_core import exceptions
except ImportError:
    print("❌ 缺少 google-generativeai 库，请安装: pip install google-generativeai")
    raise

from ..keys.advanced_key_manager import (
    AdvancedKeyManager, mask_key, read_key_file, should_switch_key, get_error_description,
)
from ..images.carrier import open_image
from ..logging.tee import log_jsonl
from ..payload.analysis import AnalysisResult, BilingualText, format_multi_view
from . import prompts


DEFAULT_MODEL = 'gemini-3-flash-preview'
DEFAULT_KEYS_DIR = 'keys'

# 可重试的错误（429 配额 / 503 过载）
RETRYABLE_EXCEPTIONS = (exceptions.ResourceExhausted, exceptions.ServiceUnavailable)
RETRYABLE_MARKERS = ('429', 'RESOURCE_EXHAUSTED', '503', 'overloaded')


class AnalysisError(RuntimeError):
    """模型调用或结果解析失败"""


def is_retryable_error(error: Exception) -> bool:
    if isinstance(error, RETRYABLE_EXCEPTIONS):
        return True
    error_str = f"{error!r} {error}"
    return any(marker in error_str for marker in RETRYABLE_MARKERS)


def describe_api_error(error: Exception, default_msg: str = "Error") -> str:
    """面向用户的错误提示"""
    error_str = f"{error!r} {error}"
    if '429' in error_str or 'RESOURCE_EXHAUSTED' in error_str or 'quota' in error_str:
        return "Quota exceeded (429). Check your billing or wait."
    if '503' in error_str or 'overloaded' in error_str:
        return "Server overloaded (503). Retrying might help."
    message = str(error)
    if message:
        return f"Error: {message[:40]}{'...' if len(message) > 40 else ''}"
    return default_msg


def _response_text(response) -> Optional[str]:
    # 被安全策略拦截时 response.text 会抛 ValueError
    try:
        return response.text
    except ValueError:
        return None


class VisualAnalyzer:
    """视觉分析客户端"""

    def __init__(self,
                 key_source: Union[str, List[str], AdvancedKeyManager, None] = None,
                 model_name: str = DEFAULT_MODEL,
                 max_retries: int = 3,
                 base_delay: float = 1.0,
                 max_workers: int = 3):
        """
        Args:
            key_source: Key 来源
                - None: 环境变量 API_KEY / GEMINI_API_KEY，其次 BANANA_PRO_KEYS_DIR 或 keys 目录
                - str: 文件夹路径、txt 文件路径或单个 key 字符串
                - List[str]: key 字符串列表
                - AdvancedKeyManager: 直接使用
            model_name: 模型名称
            max_retries: 配额 / 过载错误的重试次数
            base_delay: 首次重试等待秒数，之后每次翻倍
            max_workers: 批量识别笔记时的并行度
        """
        self.model_name = model_name
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_workers = max_workers
        self._stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'retries': 0,
            'key_switches': 0,
        }
        self._stats_lock = threading.Lock()

        self.key_manager = self._init_key_manager(key_source)
        if not self.key_manager or not self.key_manager.has_available_keys():
            raise RuntimeError("❌ 无法初始化 Key 管理器，请检查 Key 来源")

        print(f"✅ 视觉分析客户端初始化成功")
        print(f"   🔑 Key 数量: {self.key_manager.get_total_keys()}")
        print(f"   🤖 模型: {model_name}")
        print(f"   🔄 重试次数: {max_retries}")

    def _init_key_manager(self, key_source) -> Optional[AdvancedKeyManager]:
        """初始化 Key 管理器，自动判断输入类型"""
        if isinstance(key_source, AdvancedKeyManager):
            return key_source

        if key_source is None:
            env_key = os.environ.get('API_KEY') or os.environ.get('GEMINI_API_KEY')
            if env_key:
                print("🔑 使用环境变量中的 Key")
                return AdvancedKeyManager({1: [env_key]})
            keys_dir = os.environ.get('BANANA_PRO_KEYS_DIR', DEFAULT_KEYS_DIR)
            if os.path.isdir(keys_dir):
                print(f"🔍 自动扫描 Key 文件夹: {keys_dir}")
                return AdvancedKeyManager.from_directory(keys_dir)
            print(f"⚠️ 未找到 Key：环境变量为空且目录不存在: {keys_dir}")
            return None

        if isinstance(key_source, list):
            print(f"🔑 使用传入的 Key 列表: {len(key_source)} 个")
            return AdvancedKeyManager({1: key_source})

        if isinstance(key_source, str):
            key_source = key_source.strip()
            if os.path.isdir(key_source):
                print(f"📁 扫描 Key 文件夹: {key_source}")
                return AdvancedKeyManager.from_directory(key_source)
            if os.path.isfile(key_source) and key_source.endswith('.txt'):
                print(f"📄 加载 Key 文件: {key_source}")
                return AdvancedKeyManager({1: read_key_file(key_source)})
            if key_source.startswith('AIza'):
                print(f"🔑 使用单个 Key 字符串")
                return AdvancedKeyManager({1: [key_source]})
            raise ValueError(f"❌ 无法识别的 Key 来源: {key_source}")

        raise ValueError(f"❌ 不支持的 Key 来源类型: {type(key_source)}")

    def get_stats(self) -> Dict[str, Any]:
        """获取统计信息"""
        with self._stats_lock:
            return self._stats.copy()

    def _bump(self, name: str):
        with self._stats_lock:
            self._stats[name] += 1

    def _generate_with_retry(self, model, contents, generation_config):
        """配额 / 过载错误按 base_delay, 2*base_delay, ... 退避重试"""
        delay = self.base_delay
        retries = self.max_retries
        while True:
            try:
                return model.generate_content(contents, generation_config=generation_config)
            except Exception as e:
                if retries <= 0 or not is_retryable_error(e):
                    raise
                print(f"⚠️ API 错误 {type(e).__name__}，{delay:g}s 后重试（剩余 {retries} 次）")
                self._bump('retries')
                time.sleep(delay)
                delay *= 2
                retries -= 1

    def call_gemini(self,
                    prompt: str,
                    image_paths: Optional[List[str]] = None,
                    json_mode: bool = True) -> Tuple[bool, str, Optional[str]]:
        """
        调用模型

        Args:
            prompt: 文本提示词（放在图片之后）
            image_paths: 输入图片路径列表，不存在的路径会被跳过
            json_mode: 是否要求返回 application/json

        Returns:
            Tuple[bool, str, Optional[str]]: (是否成功, 错误原因, 返回文本)
        """
        self._bump('total_requests')
        contents: List[Any] = []
        for image_path in image_paths or []:
            if os.path.exists(image_path):
                contents.append(open_image(image_path))
        contents.append(prompt)
        generation_config = {"response_mime_type": "application/json"} if json_mode else None

        # Key 轮换循环
        while True:
            api_key = self.key_manager.get_current_key()
            if not api_key:
                self._bump('failed_requests')
                stats = self.key_manager.get_stats()
                return False, f"所有API Key都已失效 [失效:{stats['failed_count']}]", None

            try:
                genai.configure(api_key=api_key)
                model = genai.GenerativeModel(self.model_name)
                response = self._generate_with_retry(model, contents, generation_config)
            except Exception as e:
                error_desc = get_error_description(e)
                if should_switch_key(e) and self.key_manager.mark_key_failed(api_key, error_desc):
                    self._bump('key_switches')
                    log_jsonl({"event": "key_switch", "reason": error_desc, "key": mask_key(api_key)})
                    continue
                self._bump('failed_requests')
                log_jsonl({"event": "analyze_error", "reason": error_desc, "key": mask_key(api_key)})
                return False, describe_api_error(e), None

            text = _response_text(response)
            if text is None:
                self._bump('failed_requests')
                feedback = getattr(response, 'prompt_feedback', None)
                return False, f"被安全策略阻止: {feedback}", None

            self._bump('successful_requests')
            if json_mode and not text:
                text = "{}"
            return True, "", text

    def call_json(self, prompt: str, image_paths: Optional[List[str]] = None) -> Dict[str, Any]:
        """调用模型并解析 JSON，失败抛出 AnalysisError"""
        ok, reason, text = self.call_gemini(prompt, image_paths, json_mode=True)
        if not ok:
            raise AnalysisError(reason)
        try:
            data = json.loads(text)
        except ValueError as e:
            raise AnalysisError(f"返回内容不是有效 JSON: {e}") from e
        if not isinstance(data, dict):
            raise AnalysisError("返回 JSON 不是对象")
        return data

    def analyze(self, image_paths: List[str], sketch_path: Optional[str] = None) -> AnalysisResult:
        """整体分析，有草图时额外生成 sketchPrompt"""
        if not image_paths and not sketch_path:
            raise ValueError("Please upload files.")
        paths = list(image_paths or [])
        if sketch_path:
            paths.append(sketch_path)
        data = self.call_json(prompts.analysis_prompt(bool(sketch_path)), paths)
        return AnalysisResult.from_dict(data)

    def analyze_field(self,
                      image_paths: List[str],
                      field: str,
                      analysis: Optional[AnalysisResult] = None) -> BilingualText:
        """只重新分析一个字段，可同时写回已有分析结果"""
        data = self.call_json(prompts.single_field_prompt(field), image_paths)
        value = BilingualText.from_value(data.get(field))
        if analysis is not None:
            analysis.set_field(field, value)
        return value

    def multi_view(self,
                   image_paths: List[str],
                   count: int = 4,
                   analysis: Optional[AnalysisResult] = None) -> BilingualText:
        """生成多个机位提示词"""
        data = self.call_json(prompts.multi_view_prompt(count), image_paths)
        views = data.get("multiViewPrompts") or {}
        value = BilingualText(en=format_multi_view(views.get("en")), vi=format_multi_view(views.get("vi")))
        if analysis is not None:
            analysis.set_field("multiViewPrompts", value)
        return value

    def custom_angle(self, image_paths: List[str], request: str) -> Dict[str, Any]:
        """按描述生成单个机位的双语提示词"""
        request = (request or "").strip()
        if not request:
            raise ValueError("角度描述不能为空")
        data = self.call_json(prompts.custom_angle_prompt(request), image_paths)
        return {"en": data.get("en") or {}, "vi": data.get("vi") or {}}

    def object_dna(self, image_paths: List[str], lang: str = "en") -> str:
        """提取对象的视觉 DNA 描述"""
        data = self.call_json(prompts.object_dna_prompt(lang), image_paths)
        return data.get("analysis") or "No result."

    def _extract_note(self, image_path: str) -> Dict[str, str]:
        try:
            data = self.call_json(prompts.NOTES_PROMPT, [image_path])
        except AnalysisError as e:
            print(f"❌ 笔记识别失败 {image_path}: {e}")
            return {"file": image_path, "vi": "Error processing", "en": "Error processing"}
        return {
            "file": image_path,
            "vi": data.get("vi") or "No text detected",
            "en": data.get("en") or "No text detected",
        }

    def extract_notes(self, image_paths: List[str]) -> List[Dict[str, str]]:
        """并发识别每张图片上的笔记，结果与输入顺序一致"""
        if not image_paths:
            return []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(self._extract_note, image_paths))

    def translate(self, text: str) -> str:
        """英越互译，失败抛出 AnalysisError"""
        text = (text or "").strip()
        if not text:
            return ""
        ok, reason, translated = self.call_gemini(prompts.translate_prompt(text), json_mode=False)
        if not ok:
            raise AnalysisError(reason)
        return translated or text
