"""
操作指令解析
格式：add|update|delete 面板名(行号 {"列号","值","列号","值"})
例如：add personal(1 {"1","张三","2","24"})、delete tasks(2)

数据参数使用识别引号的逗号分割，引号内的逗号不是分隔符。
列号无法解析或参数个数不成对时，整条指令无效并抛出 MalformedDirectiveError。
"""
import re
from typing import Dict, List

from ..core import get_logger
from ..core.events import OperationCommand, OperationKind
from ..core.exceptions import MalformedDirectiveError
from .detector import DIRECTIVE_PATTERN, is_directive_like_line
from .tokenizer import QUOTE

logger = get_logger(__name__)

PAYLOAD_SEPARATORS = (",", "，")
COMMENT_PREFIXES = ("//", "#")
COMMENT_MARKERS = ("<!--", "-->")
COLUMN_PATTERN = re.compile(r"^\d+$")


def split_payload(payload: str, line: str = "") -> List[str]:
    """
    按逗号分割数据参数，返回去掉引号后的各项
    引号内的 '""' 表示一个字面引号
    """
    items: List[str] = []
    inside: List[str] = []
    outside: List[str] = []
    quoted = False
    in_quotes = False
    i = 0
    length = len(payload)

    def finish_item():
        bare = "".join(outside).strip()
        if quoted:
            items.append("".join(inside) + bare)
        else:
            items.append(bare)

    while i < length:
        char = payload[i]
        if in_quotes:
            if char == QUOTE:
                if i + 1 < length and payload[i + 1] == QUOTE:
                    inside.append(QUOTE)
                    i += 2
                    continue
                in_quotes = False
            else:
                inside.append(char)
            i += 1
            continue

        if char == QUOTE:
            in_quotes = True
            quoted = True
        elif char in PAYLOAD_SEPARATORS:
            finish_item()
            inside, outside, quoted = [], [], False
        else:
            outside.append(char)
        i += 1

    if in_quotes:
        raise MalformedDirectiveError(line or payload, "unterminated quote in payload")

    # 末尾多余的逗号不产生空项
    if quoted or "".join(outside).strip():
        finish_item()

    return items


def parse_payload(payload: str, line: str = "") -> Dict[int, str]:
    """把 "列号","值" 交替排列的参数解析为 列号 -> 值"""
    if not payload or not payload.strip():
        return {}

    items = split_payload(payload, line)
    if len(items) % 2 != 0:
        raise MalformedDirectiveError(
            line or payload,
            f"payload must alternate column and value, got {len(items)} items",
        )

    data: Dict[int, str] = {}
    for index in range(0, len(items), 2):
        column_literal = items[index].strip()
        if not COLUMN_PATTERN.match(column_literal) or int(column_literal) < 1:
            raise MalformedDirectiveError(
                line or payload,
                f'column "{column_literal}" is not a positive integer',
            )
        data[int(column_literal)] = items[index + 1]
    return data


def parse_directive_line(line: str) -> OperationCommand:
    """解析单条操作指令"""
    trimmed = line.strip()
    match = DIRECTIVE_PATTERN.match(trimmed)
    if not match:
        raise MalformedDirectiveError(trimmed, "invalid directive syntax")

    operation, panel_name, row_number, payload = match.groups()
    command = OperationCommand(
        kind=OperationKind(operation.lower()),
        panel=panel_name,
        row=int(row_number),
        fields=parse_payload(payload or "", trimmed),
        source=trimmed,
    )
    logger.debug(f"解析指令: {command.kind.value.upper()} {panel_name}({row_number}) 字段数 {len(command.fields)}")
    return command


def parse_directive_block(block: str) -> List[OperationCommand]:
    """
    解析数据块中的所有操作指令，保持出现顺序
    形似指令但语法错误的行会抛出异常；其余非指令行忽略
    """
    commands: List[OperationCommand] = []

    for line in block.splitlines():
        trimmed = line.strip()
        if not trimmed or trimmed.startswith(COMMENT_PREFIXES) or trimmed in COMMENT_MARKERS:
            continue

        if DIRECTIVE_PATTERN.match(trimmed):
            commands.append(parse_directive_line(trimmed))
        elif is_directive_like_line(trimmed):
            raise MalformedDirectiveError(trimmed, "invalid directive syntax")
        else:
            logger.debug(f"忽略非指令行: {trimmed[:50]}")

    logger.debug(f"解析了 {len(commands)} 个操作指令")
    return commands
