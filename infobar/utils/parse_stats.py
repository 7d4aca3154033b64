"""
解析统计
记录解析次数、成功/拒绝/异常次数和缓存命中，供宿主观察解析器的健康状况
"""
import time
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime

from ..core import get_logger

logger = get_logger(__name__)


@dataclass
class ParseStats:
    """解析统计"""
    total_parsed: int = 0
    successful_parsed: int = 0
    rejected: int = 0
    errors: int = 0
    cache_hits: int = 0
    last_parse_time: float = 0.0
    start_time: datetime = field(default_factory=datetime.now)

    @property
    def success_rate(self) -> float:
        if self.total_parsed == 0:
            return 0.0
        return self.successful_parsed / self.total_parsed * 100


class ParseStatsTracker:
    """
    解析统计追踪器
    线程安全，宿主可以在其他线程读取统计
    """

    def __init__(self):
        self._stats = ParseStats()
        self._lock = threading.Lock()

    def record_attempt(self) -> None:
        with self._lock:
            self._stats.total_parsed += 1

    def record_success(self) -> None:
        with self._lock:
            self._stats.successful_parsed += 1
            self._stats.last_parse_time = time.time()

    def record_rejection(self) -> None:
        with self._lock:
            self._stats.rejected += 1

    def record_error(self) -> int:
        """记录一次内部异常，返回累计异常次数"""
        with self._lock:
            self._stats.errors += 1
            return self._stats.errors

    def record_cache_hit(self) -> None:
        with self._lock:
            self._stats.cache_hits += 1

    def get_stats(self) -> ParseStats:
        """获取当前统计的副本"""
        with self._lock:
            return replace(self._stats)

    def reset(self) -> None:
        """重置统计"""
        with self._lock:
            self._stats = ParseStats()

        logger.info("解析统计已重置")

    def format_stats(self) -> str:
        """格式化统计信息"""
        stats = self.get_stats()
        duration = datetime.now() - stats.start_time

        return (
            f"解析统计：\n"
            f"总解析次数: {stats.total_parsed}\n"
            f"成功次数: {stats.successful_parsed}\n"
            f"拒绝次数: {stats.rejected}\n"
            f"异常次数: {stats.errors}\n"
            f"缓存命中: {stats.cache_hits}\n"
            f"成功率: {stats.success_rate:.2f}%\n"
            f"统计时长: {duration}"
        )
