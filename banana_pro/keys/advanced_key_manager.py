# Gemini API Key 管理：多级优先级、轮换、失效冷却与恢复
from typing import List, Optional, Dict, Set
import threading
import time
import os
import glob
from datetime import datetime, timedelta, timezone
from tqdm import tqdm


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def mask_key(key: str) -> str:
    """掩码显示 API Key"""
    if not key:
        return ""
    return key[:6] + "..." + key[-4:] if len(key) > 12 else key


def read_key_file(file_path: str) -> List[str]:
    """读取 key 文件，忽略空行和 # 注释"""
    keys = []
    with open(file_path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#'):
                keys.append(line)
    return keys


class AdvancedKeyManager:
    """
    API Key 管理器：
    - 多级优先级 key 池
    - 轮换取 key
    - 失效 key 冷却后自动恢复，多次失效转为永久失效
    """

    def __init__(self, key_pools: Optional[Dict[int, List[str]]] = None, min_active_keys: int = 1):
        self._key_pools: Dict[int, List[str]] = {}
        for priority, keys in (key_pools or {}).items():
            clean_keys = [k.strip() for k in keys if k and k.strip()]
            if clean_keys:
                self._key_pools[priority] = clean_keys

        self._min_active_keys = min_active_keys
        self._current_index = 0
        self._lock = threading.Lock()
        self._failed_keys: Set[str] = set()
        self._permanent_failed_keys: Set[str] = set()
        self._temporary_failures: Dict[str, Dict] = {}
        self._retry_cooldown: timedelta = timedelta(minutes=30)
        self._max_temp_failures_before_permanent: int = 3
        self._last_refresh_monotonic: float = 0.0
        self._active_keys: List[str] = []
        with self._lock:
            self._rebuild_active_pool()

        if self._key_pools:
            print(f"🔑 Key管理器已初始化: {self.get_total_keys()} 个key, {len(self._key_pools)} 个优先级")
        else:
            print("🔑 Key管理器已初始化（空状态）")

    def configure_recovery(self, retry_cooldown_minutes: Optional[int] = None,
                           max_temp_failures_before_permanent: Optional[int] = None):
        with self._lock:
            if retry_cooldown_minutes is not None and retry_cooldown_minutes >= 0:
                self._retry_cooldown = timedelta(minutes=retry_cooldown_minutes)
            if max_temp_failures_before_permanent is not None and max_temp_failures_before_permanent > 0:
                self._max_temp_failures_before_permanent = max_temp_failures_before_permanent

    @classmethod
    def from_directory(cls, directory: str, min_active_keys: int = 1):
        """加载目录下的 api_keys_<优先级>.txt"""
        if not os.path.isdir(directory):
            raise ValueError(f"Directory '{directory}' does not exist.")
        key_files = glob.glob(os.path.join(directory, "api_keys_*.txt"))
        if not key_files:
            raise ValueError(f"No api_keys_*.txt files found in '{directory}'")
        key_pools = {}
        for file_path in sorted(key_files):
            filename = os.path.basename(file_path)
            try:
                priority = int(filename[len("api_keys_"):-len(".txt")])
            except ValueError:
                print(f"⚠️ 跳过文件 {filename}: 无法解析优先级")
                continue
            keys = read_key_file(file_path)
            if keys:
                key_pools.setdefault(priority, []).extend(keys)
                print(f"📁 加载 {filename}: {len(keys)} 个key")
            else:
                print(f"⚠️ {filename} 中没有找到有效key")
        if not key_pools:
            raise ValueError(f"No valid keys loaded from '{directory}'")
        return cls(key_pools, min_active_keys)

    def _is_available_unlocked(self, key: str, now: datetime) -> bool:
        if key in self._permanent_failed_keys:
            return False
        info = self._temporary_failures.get(key)
        if info is not None:
            return now - info["last_failed_at"] >= self._retry_cooldown
        return key not in self._failed_keys

    def _rebuild_active_pool(self):
        now = _utcnow()
        # 冷却结束的 key 恢复可用
        for k, info in list(self._temporary_failures.items()):
            if now - info["last_failed_at"] >= self._retry_cooldown:
                self._failed_keys.discard(k)
                self._temporary_failures.pop(k, None)

        new_active_keys = []
        for priority in sorted(self._key_pools.keys()):
            for k in self._key_pools[priority]:
                if self._is_available_unlocked(k, now) and k not in new_active_keys:
                    new_active_keys.append(k)
            if len(new_active_keys) >= self._min_active_keys:
                break
        self._active_keys = new_active_keys
        self._current_index = 0
        if self._key_pools and len(self._active_keys) < self._min_active_keys:
            tqdm.write(f"⚠️ 活跃key池仅有 {len(self._active_keys)} 个key，少于要求的 {self._min_active_keys} 个")

    def _maybe_refresh_locked(self):
        now_mono = time.monotonic()
        if now_mono - self._last_refresh_monotonic < 10:
            return
        self._last_refresh_monotonic = now_mono
        self._rebuild_active_pool()

    def get_current_key(self) -> Optional[str]:
        with self._lock:
            self._maybe_refresh_locked()
            if not self._active_keys:
                return None
            key = self._active_keys[self._current_index % len(self._active_keys)]
            self._current_index = (self._current_index + 1) % len(self._active_keys)
            return key

    def mark_key_failed(self, key: str, error_type: str = "unknown") -> bool:
        """标记 key 失效，返回是否还有可用 key"""
        if not key:
            return self.has_available_keys()
        with self._lock:
            now = _utcnow()
            self._failed_keys.add(key)
            if self._is_permanent_error_unlocked(error_type):
                self._permanent_failed_keys.add(key)
                self._temporary_failures.pop(key, None)
            else:
                info = self._temporary_failures.get(key, {"failure_count": 0})
                info["failure_count"] += 1
                info["last_failed_at"] = now
                info["error_type"] = error_type
                self._temporary_failures[key] = info
                if info["failure_count"] >= self._max_temp_failures_before_permanent:
                    self._permanent_failed_keys.add(key)
                    self._temporary_failures.pop(key, None)

            if key in self._permanent_failed_keys:
                scope, extra = "永久失效", ""
            else:
                next_retry_at = now + self._retry_cooldown
                scope, extra = "临时失效", f" | 冷却至: {next_retry_at.strftime('%Y-%m-%d %H:%M:%S')} UTC"
            tqdm.write(f"🔑 Key失效[{scope}] ({error_type}): key: {mask_key(key)}{extra}")

            old_active_count = len(self._active_keys)
            self._rebuild_active_pool()
            tqdm.write(f"🔑 活跃池更新: {old_active_count} -> {len(self._active_keys)} 个key")
            return len(self._active_keys) > 0

    def has_available_keys(self) -> bool:
        with self._lock:
            self._maybe_refresh_locked()
            return len(self._active_keys) > 0

    def reset_failed_keys(self):
        with self._lock:
            self._failed_keys.clear()
            self._permanent_failed_keys.clear()
            self._temporary_failures.clear()
            self._rebuild_active_pool()
            print("🔄 已重置所有失效key，重新构建活跃池")

    def _is_permanent_error_unlocked(self, error_type: str) -> bool:
        if not error_type:
            return False
        et = str(error_type).lower()
        permanent_keywords = [
            "unauthorized", "permissiondenied", "permission denied", "forbidden", "suspend",
            "invalid", "revoked", "expired", "unauthenticated", "认证失败", "权限拒绝",
        ]
        return any(k in et for k in permanent_keywords)

    def get_total_keys(self) -> int:
        return sum(len(keys) for keys in self._key_pools.values())

    def get_stats(self) -> dict:
        with self._lock:
            now = _utcnow()
            priority_stats = {}
            total_available = 0
            for priority in sorted(self._key_pools.keys()):
                keys = self._key_pools[priority]
                available = sum(1 for k in keys if self._is_available_unlocked(k, now))
                total_available += available
                priority_stats[f"priority_{priority}"] = {
                    "total": len(keys),
                    "available": available,
                    "failed": len(keys) - available,
                }
            return {
                "total_keys": sum(len(keys) for keys in self._key_pools.values()),
                "total_available": total_available,
                "failed_count": len(self._failed_keys),
                "permanent_failed_count": len(self._permanent_failed_keys),
                "temporary_failed_count": len(self._temporary_failures),
                "active_pool_size": len(self._active_keys),
                "priorities": priority_stats,
            }


def load_api_keys_advanced(keys_directory="keys", min_active_keys=1):
    return AdvancedKeyManager.from_directory(keys_directory, min_active_keys)


SWITCHABLE_EXCEPTIONS = {
    "PermissionDenied": "权限拒绝",
    "ResourceExhausted": "配额超出",
    "InvalidArgument": "参数无效",
    "Unauthenticated": "认证失败",
    "DeadlineExceeded": "请求超时",
    "ServiceUnavailable": "服务不可用",
    "InternalServerError": "内部服务器错误",
}

# 与 key 本身有关、换 key 可能解决的错误
KEY_ERROR_INDICATORS = [
    'api key', 'api_key', 'quota', 'billing', 'unauthorized', 'unauthenticated',
    'permission', 'forbidden', 'expired', 'suspended',
]


def should_switch_key(error: Exception) -> bool:
    """判断是否需要切换 Key"""
    if error.__class__.__name__ in ("PermissionDenied", "Unauthenticated"):
        return True
    error_str = str(error).lower()
    return any(indicator in error_str for indicator in KEY_ERROR_INDICATORS)


def get_error_description(error: Exception) -> str:
    class_name = error.__class__.__name__
    if class_name in SWITCHABLE_EXCEPTIONS:
        return SWITCHABLE_EXCEPTIONS[class_name]
    return f"{class_name}: {error}"
