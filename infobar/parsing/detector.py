"""
数据格式检测
按优先级依次匹配规则列表，第一个命中的规则决定数据块的格式。每条规则的判定函数都可以单独测试。
"""
import re
from dataclasses import dataclass
from typing import Callable, List, Sequence

from ..core import get_logger
from ..core.events import Format

logger = get_logger(__name__)

COMMENT_OPEN = "<!--"
COMMENT_CLOSE = "-->"
COMMENT_SEGMENT_PATTERN = re.compile(r"<!--(.*?)-->", re.DOTALL)

# add persona(1 {"1","张三","2","24"})
DIRECTIVE_PATTERN = re.compile(
    r"^(add|update|delete)\s+(\w+)\((\d+)(?:\s*\{(.*)\})?\s*\)$",
    re.IGNORECASE,
)
# 看起来像操作指令，但行号/括号位置不对：add panel 1 {...} / add panel{"1",...}(1) / add panel({...}) / add panel(1 {...}
DIRECTIVE_LIKE_PATTERN = re.compile(
    r'^(add|update|delete)\s+\w+(\s*\(\s*\{|\s*\(\s*\d|\s+\d+\s*\{|\s*\{\s*")',
    re.IGNORECASE,
)

# personal: name="张三", age="25"
PANEL_LINE_PATTERN = re.compile(r'^\s*[\w\-]+\s*[:：]\s*[^"=\n:：]+?=\s*"', re.MULTILINE)
QUOTED_VALUE_PATTERN = re.compile(r'"[^"\n]*"')

# 有面板结构时，只有明显的叙述句式才判定为叙述内容
STRONG_NARRATIVE_PATTERNS = (
    re.compile(r"^[a-zA-Z]+:\s*\([^)]+\)", re.MULTILINE),   # consider: (内容)
    re.compile(r"感到.*的|心中.*的|情绪.*的"),                # 情感描述句式
    re.compile(r"享受着|保持着|期待着"),                      # 动作描述
    re.compile(r"她.*地|他.*地"),                            # 人物动作描述
    re.compile(r"\b(?:she|he|they|i)\s+(?:felt|smiled|sighed|whispered|nodded|laughed|gazed)\b", re.IGNORECASE),
)
NARRATIVE_PATTERNS = (
    re.compile(r"感到|心中|情绪|享受|保持|开放|期待"),
    re.compile(r"^[a-zA-Z]+:\s*\([^)]+\)", re.MULTILINE),
    re.compile(r"温柔|愉悦|沉静|专注|理解|被回应"),
    re.compile(r"她.*，|他.*，"),
    re.compile(r"\b(?:felt|feeling|smiled|sighed|whispered|gently|softly|quietly)\b", re.IGNORECASE),
)


def _lines(block: str) -> List[str]:
    return [line.strip() for line in block.splitlines() if line.strip()]


def blank_quoted_values(block: str) -> str:
    """把引号内的值替换为空串，避免字段值里的叙述性文字影响判定"""
    return QUOTED_VALUE_PATTERN.sub('""', block)


def is_comment_wrapped(block: str) -> bool:
    return COMMENT_OPEN in block and COMMENT_CLOSE in block


def comment_segments(block: str) -> List[str]:
    """按出现顺序返回所有注释段的内容"""
    return [segment.strip() for segment in COMMENT_SEGMENT_PATTERN.findall(block)]


def strip_comment_markers(block: str) -> str:
    return block.replace(COMMENT_OPEN, "\n").replace(COMMENT_CLOSE, "\n").strip()


def text_outside_comments(block: str) -> str:
    """去掉所有注释段后剩下的内容"""
    return COMMENT_SEGMENT_PATTERN.sub("\n", block).strip()


def is_directive_line(line: str) -> bool:
    return DIRECTIVE_PATTERN.match(line.strip()) is not None


def is_directive_like_line(line: str) -> bool:
    return DIRECTIVE_LIKE_PATTERN.match(line.strip()) is not None


def has_operation_commands(block: str) -> bool:
    return any(is_directive_line(line) for line in _lines(block))


def has_directive_lines(block: str) -> bool:
    """有任何一行是操作指令，或形似操作指令"""
    return any(is_directive_line(line) or is_directive_like_line(line) for line in _lines(block))


def has_malformed_directives(block: str) -> bool:
    """有形似操作指令的行，但没有一行符合完整语法"""
    lines = _lines(block)
    return any(is_directive_like_line(line) for line in lines) and not any(
        is_directive_line(line) for line in lines
    )


def has_panel_structure(block: str) -> bool:
    return PANEL_LINE_PATTERN.search(block) is not None


def is_narrative(block: str) -> bool:
    """
    判断内容是否为叙述性文字而不是数据
    """
    stripped = blank_quoted_values(block)
    if has_panel_structure(block):
        return any(pattern.search(stripped) for pattern in STRONG_NARRATIVE_PATTERNS)
    return any(pattern.search(stripped) for pattern in NARRATIVE_PATTERNS)


def is_plain_attributes(block: str) -> bool:
    return has_panel_structure(block) and not is_narrative(block)


@dataclass(frozen=True)
class DetectionRule:
    name: str
    predicate: Callable[[str], bool]
    format: Format


DETECTION_RULES: Sequence[DetectionRule] = (
    DetectionRule("comment_wrapped", is_comment_wrapped, Format.COMMENT_WRAPPED),
    DetectionRule("operation_commands", has_operation_commands, Format.OPERATION_COMMANDS),
    DetectionRule("malformed_directives", has_malformed_directives, Format.MALFORMED_DIRECTIVES),
    DetectionRule("plain_attributes", is_plain_attributes, Format.PLAIN_ATTRIBUTES),
)


def detect_format(block: str, rules: Sequence[DetectionRule] = DETECTION_RULES) -> Format:
    """按优先级返回第一个命中的格式，全部未命中时返回 REJECTED"""
    if not block or not block.strip():
        return Format.REJECTED

    for rule in rules:
        if rule.predicate(block):
            logger.debug(f"检测到数据格式: {rule.name}")
            return rule.format

    if is_narrative(block):
        logger.debug("内容为叙述性文字，不作为数据处理")
    else:
        logger.debug(f"未识别的数据格式，内容预览: {block[:100]}")
    return Format.REJECTED


def rejection_reason(block: str) -> str:
    """REJECTED 时给出更具体的原因"""
    if not block or not block.strip():
        return "empty block"
    if is_narrative(block):
        return "narrative prose"
    return "no recognizable data format"
