"""
面板数据解析
把属性格式的数据块按行拆分为 面板名 -> 字段映射。此阶段不做结构校验。

预期格式: panelName: field1="value1", field2="value2"
"""
from typing import Dict

from ..core import get_logger
from ..core.events import FieldMap
from .tokenizer import QUOTE, parse_field_map

logger = get_logger(__name__)

COLONS = (":", "：")
COMMENT_PREFIXES = ("//", "#")
COMMENT_MARKERS = ("<!--", "-->")


def find_top_level_colon(line: str) -> int:
    """返回第一个出现在任何引号之前的冒号位置，没有则返回 -1"""
    for index, char in enumerate(line):
        if char == QUOTE:
            return -1
        if char in COLONS:
            return index
    return -1


def parse_panel_line(line: str):
    """
    解析单行，返回 (面板名, 字段映射)；无法解析时返回 None
    """
    colon_index = find_top_level_colon(line)
    if colon_index <= 0:
        return None

    panel_name = line[:colon_index].strip()
    panel_data_str = line[colon_index + 1:].strip()
    if not panel_name or not panel_data_str:
        return None

    return panel_name, parse_field_map(panel_data_str)


def parse_panel_block(block: str) -> Dict[str, FieldMap]:
    """
    解析整个数据块
    没有解析出任何字段的面板会被丢弃；同一面板出现在多行时合并字段，后出现的为准
    """
    result: Dict[str, FieldMap] = {}
    lines = block.splitlines()

    for index, line in enumerate(lines, start=1):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith(COMMENT_PREFIXES) or trimmed in COMMENT_MARKERS:
            continue

        parsed = parse_panel_line(trimmed)
        if parsed is None:
            logger.debug(f"跳过第 {index} 行（无有效的面板名）: {trimmed[:50]}")
            continue

        panel_name, fields = parsed
        if not fields:
            logger.debug(f"第 {index} 行没有解析出字段，丢弃面板: {panel_name}")
            continue

        result.setdefault(panel_name, {}).update(fields)
        logger.debug(f"解析面板: {panel_name} 包含 {len(fields)} 个字段")

    logger.debug(f"面板数据解析完成，共 {len(result)} 个面板")
    return result
