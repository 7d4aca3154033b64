"""
字段分词器
把一行 `field1="v1", field2="value with ""quoted"" text"` 解析为有序的 (字段名, 值) 列表。

单次扫描的状态机：
1. 跳过空白和逗号
2. 读取到 '=' 为止作为字段名
3. '=' 之后第一个非空白字符必须是 '"'，否则跳过该片段（不报错）
4. 读取值：'""' 是转义的引号；'"' 后紧跟逗号、空白或行尾时结束；其他 '"' 原样保留
"""
from typing import Dict, Iterable, List, Tuple

from ..core import get_logger

logger = get_logger(__name__)

QUOTE = '"'
ESCAPED_QUOTE = '""'
FIELD_SEPARATORS = (",", "，")


def _is_value_end(next_char: str) -> bool:
    return next_char == "" or next_char in FIELD_SEPARATORS or next_char.isspace()


def read_quoted_value(text: str, start: int) -> Tuple[str, int]:
    """
    从 start（必须是开始引号）读取一个带引号的值
    返回 (值, 下一个读取位置)；未闭合的值一直读到行尾
    """
    if start >= len(text) or text[start] != QUOTE:
        return "", start

    i = start + 1
    length = len(text)
    chars: List[str] = []

    while i < length:
        char = text[i]
        if char != QUOTE:
            chars.append(char)
            i += 1
            continue

        next_char = text[i + 1] if i + 1 < length else ""
        if next_char == QUOTE:
            # 转义的引号
            chars.append(QUOTE)
            i += 2
        elif _is_value_end(next_char):
            return "".join(chars), i + 1
        else:
            # 嵌套结构中未成对的引号，按内容处理
            chars.append(char)
            i += 1

    logger.debug(f"字段值缺少结束引号，按截断内容处理: {''.join(chars)[:50]}")
    return "".join(chars), i


def tokenize_fields(line: str) -> List[Tuple[str, str]]:
    """
    解析一行字段数据，返回按出现顺序排列的 (字段名, 值)
    格式错误的片段直接跳过，不会中断整行的解析
    """
    pairs: List[Tuple[str, str]] = []
    i = 0
    length = len(line)

    while i < length:
        # 跳过空白字符和逗号
        while i < length and (line[i].isspace() or line[i] in FIELD_SEPARATORS):
            i += 1
        if i >= length:
            break

        # 查找字段名（到等号为止）
        key_start = i
        while i < length and line[i] != "=":
            i += 1
        if i >= length:
            logger.debug(f"忽略没有等号的片段: {line[key_start:key_start + 50]}")
            break

        key = line[key_start:i].strip()
        i += 1  # 跳过 '='

        while i < length and line[i].isspace():
            i += 1

        if i >= length or line[i] != QUOTE:
            # 没有引号，跳过这个字段直到下一个逗号
            fragment_start = i
            while i < length and line[i] not in FIELD_SEPARATORS:
                i += 1
            logger.debug(f"跳过没有引号的字段: {key}={line[fragment_start:i][:50]}")
            continue

        value, i = read_quoted_value(line, i)

        if not key:
            logger.debug(f"跳过空字段名，值: {value[:50]}")
            continue

        pairs.append((key, value))

    return pairs


def parse_field_map(line: str) -> Dict[str, str]:
    """同一个字段出现多次时，以最后一次为准"""
    result: Dict[str, str] = {}
    for key, value in tokenize_fields(line):
        result[key] = value
    return result


def unescape_quotes(value: str) -> str:
    return value.replace(ESCAPED_QUOTE, QUOTE)


def escape_quotes(value: str) -> str:
    return value.replace(QUOTE, ESCAPED_QUOTE)


def serialize_fields(pairs: Iterable[Tuple[str, str]]) -> str:
    """按相同的引号约定把字段写回一行"""
    return ", ".join(f'{key}="{escape_quotes(value)}"' for key, value in pairs)
