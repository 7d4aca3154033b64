"""
解析结果缓存
键为 (消息ID, 内容哈希)，容量固定，超出后按先进先出淘汰最早的条目。
不是线程安全的，多线程环境下由调用方串行化访问。
"""
import hashlib
from collections import OrderedDict
from typing import Hashable, Optional, Tuple

from ..core import get_logger
from ..core.events import ParseOutcome

logger = get_logger(__name__)

CacheKey = Tuple[str, str]

DEFAULT_CAPACITY = 100


def content_hash(text: str) -> str:
    return hashlib.blake2b(text.encode("utf-8"), digest_size=8).hexdigest()


def make_cache_key(message_id: Hashable, text: str) -> CacheKey:
    return str(message_id), content_hash(text)


class ParseCache:
    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("缓存容量必须大于 0")
        self.capacity = capacity
        self._entries: "OrderedDict[CacheKey, ParseOutcome]" = OrderedDict()

    def get(self, key: CacheKey) -> Optional[ParseOutcome]:
        return self._entries.get(key)

    def put(self, key: CacheKey, outcome: ParseOutcome) -> None:
        if key in self._entries:
            # 覆盖不改变淘汰顺序
            self._entries[key] = outcome
            return

        while len(self._entries) >= self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"缓存已满，淘汰: {evicted[0]}")

        self._entries[key] = outcome
        logger.debug(f"缓存解析结果: {key[0]}_{key[1]}")

    def clear(self) -> None:
        self._entries.clear()
        logger.info("解析缓存已清理")

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
