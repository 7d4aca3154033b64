"""
数据规范化
- 去除字段名和值两端的空白，丢弃空值字段和空面板
- 多实体面板（如交互对象面板）：
  * 规范化实体前缀：npc0.name / NPC_1.name / entity 2.name -> <面板前缀>N.name
  * 所有字段都没有实体前缀时，拆分被合并的多实体值：
    name="Alice, Bob", hp="10, 8" -> entity0.name="Alice", entity1.name="Bob", entity0.hp="10", entity1.hp="8"
    实体数取各字段分段数的最大值，分段较少的字段用其最后一段补齐
  * 带前缀与不带前缀的字段混用时，不带前缀的字段分配给每个缺少该字段的实体
"""
import re
from functools import lru_cache
from typing import Dict, List, Optional, Sequence, Tuple

from ..core import get_logger
from ..core.events import FieldMap
from ..schema import Schema

logger = get_logger(__name__)

DEFAULT_ENTITY_ALIASES = ("entity", "npc", "org")
DEFAULT_CONNECTIVE_WORDS = (" and ", " & ", "以及")
MERGE_SEPARATORS = (",", "，", "/", "、", ";", "；")


@lru_cache(maxsize=32)
def _entity_key_pattern(aliases: Tuple[str, ...]) -> re.Pattern:
    alternatives = "|".join(re.escape(alias) for alias in sorted(set(aliases), key=len, reverse=True))
    return re.compile(
        rf"^(?P<alias>{alternatives})[\s_\-]?(?P<index>\d+)\s*\.\s*(?P<field>.+)$",
        re.IGNORECASE,
    )


@lru_cache(maxsize=32)
def _separator_pattern(connectives: Tuple[str, ...]) -> re.Pattern:
    parts = [re.escape(sep) for sep in MERGE_SEPARATORS]
    parts.extend(re.escape(word) for word in connectives if word)
    return re.compile("|".join(parts), re.IGNORECASE)


def split_entity_key(key: str, aliases: Sequence[str] = DEFAULT_ENTITY_ALIASES) -> Optional[Tuple[str, int, str]]:
    """
    拆分带实体前缀的字段名
    返回 (前缀原文, 实体序号, 字段名)，不带前缀时返回 None
    """
    if not aliases:
        return None
    match = _entity_key_pattern(tuple(aliases)).match(key.strip())
    if not match:
        return None
    return match.group("alias"), int(match.group("index")), match.group("field").strip()


def entity_key(prefix: str, index: int, field_name: str) -> str:
    return f"{prefix}{index}.{field_name}"


def split_merged_value(value: str, connectives: Sequence[str] = DEFAULT_CONNECTIVE_WORDS) -> List[str]:
    """按分隔符和连接词拆分合并值，返回非空分段"""
    segments = _separator_pattern(tuple(connectives)).split(value)
    return [segment.strip() for segment in segments if segment.strip()]


def clean_fields(fields: FieldMap) -> FieldMap:
    """去除空白并丢弃空值"""
    cleaned: FieldMap = {}
    for key, value in fields.items():
        key = key.strip()
        value = value.strip() if isinstance(value, str) else value
        if key and value != "":
            cleaned[key] = value
    return cleaned


def split_merged_entities(fields: FieldMap, prefix: str, connectives: Sequence[str] = DEFAULT_CONNECTIVE_WORDS) -> FieldMap:
    """
    拆分没有实体前缀的合并字段
    只要有一个字段拆出多于一段，就按最大分段数生成 prefix0..prefixN-1
    """
    segments = {key: split_merged_value(value, connectives) for key, value in fields.items()}
    entity_count = max((len(parts) for parts in segments.values()), default=0)

    if entity_count <= 1:
        return {entity_key(prefix, 0, key): value for key, value in fields.items()}

    logger.debug(f"检测到 {entity_count} 个被合并的实体，按位置拆分")
    result: FieldMap = {}
    for index in range(entity_count):
        for key, parts in segments.items():
            if not parts:
                continue
            result[entity_key(prefix, index, key)] = parts[index] if index < len(parts) else parts[-1]
    return result


def group_entity_fields(
    fields: FieldMap,
    prefix: str,
    aliases: Sequence[str] = DEFAULT_ENTITY_ALIASES,
    connectives: Sequence[str] = DEFAULT_CONNECTIVE_WORDS,
) -> FieldMap:
    """规范化多实体面板的字段"""
    groups: Dict[int, FieldMap] = {}
    global_fields: FieldMap = {}

    for key, value in fields.items():
        parsed = split_entity_key(key, tuple(aliases) + (prefix,))
        if parsed:
            _, index, field_name = parsed
            groups.setdefault(index, {})[field_name] = value
        else:
            global_fields[key] = value

    if not groups:
        return split_merged_entities(global_fields, prefix, connectives)

    # 将全局字段分配给所有缺少该字段的实体
    for index in groups:
        for field_name, value in global_fields.items():
            groups[index].setdefault(field_name, value)

    return {
        entity_key(prefix, index, field_name): value
        for index in sorted(groups)
        for field_name, value in groups[index].items()
    }


def normalize_panels(
    panels: Dict[str, FieldMap],
    schema: Schema,
    aliases: Sequence[str] = DEFAULT_ENTITY_ALIASES,
    connectives: Sequence[str] = DEFAULT_CONNECTIVE_WORDS,
) -> Dict[str, FieldMap]:
    """规范化已通过结构校验的面板数据，清理后为空的面板会被丢弃"""
    result: Dict[str, FieldMap] = {}

    for panel_id, fields in panels.items():
        cleaned = clean_fields(fields)
        panel = schema.get_panel(panel_id)
        prefix = panel.canonical_prefix if panel else None
        if cleaned and prefix:
            cleaned = group_entity_fields(cleaned, prefix, aliases, connectives)

        if not cleaned:
            logger.debug(f"面板 {panel_id} 清理后没有有效字段，丢弃")
            continue
        result[panel_id] = cleaned

    return result
