"""
Utils 工具模块
"""
from .parse_stats import ParseStats, ParseStatsTracker

__all__ = [
    "ParseStats",
    "ParseStatsTracker",
]
