"""依赖缓存模块

- keys.py:      缓存键生成
- installer.py: 幂等安装（临时目录 + 原子 rename）
- registry.py:  缓存登记表
"""

from wares.core.cache.installer import Installer, prepare_cache_root
from wares.core.cache.keys import cache_key, sanitize_filename
from wares.core.cache.registry import CachedObject, CacheRegistry

__all__ = [
    "CacheRegistry",
    "CachedObject",
    "Installer",
    "cache_key",
    "prepare_cache_root",
    "sanitize_filename",
]
