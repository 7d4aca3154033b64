"""
events模块
定义了程序中，模块间传递信息的数据结构：解析结果、操作指令，以及向下游通知解析结果的事件总线
"""
import time
from enum import Enum
from dataclasses import dataclass, field, replace
from typing import Any, Callable, ClassVar, Dict, Iterator, List, Optional

from .exceptions import InfobarError, SchemaViolationError
from .logger import get_logger

logger = get_logger(__name__)

FieldMap = Dict[str, str]

EVENT_DATA_PARSED = "infobar:data:parsed"
EVENT_DATA_REJECTED = "infobar:data:rejected"
EVENT_PARSER_ERROR = "infobar:parser:error"


class Format(Enum):
    COMMENT_WRAPPED = "comment_wrapped"
    OPERATION_COMMANDS = "operation_commands"
    MALFORMED_DIRECTIVES = "malformed_directives"
    PLAIN_ATTRIBUTES = "plain_attributes"
    REJECTED = "rejected"


class OperationKind(Enum):
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


class OutcomeKind(Enum):
    NO_BLOCK = "no_block"
    PANEL_DATA = "panel_data"
    DIRECTIVES = "directives"
    REJECTED = "rejected"


@dataclass
class RawBlock:
    """
    标签区域内的原始文本
    content: 去除首尾空白后的内容
    partial: 开始或结束标签缺失时为 True
    missing: 缺失的标签，"open" 或 "close"
    """
    content: str
    partial: bool = False
    missing: Optional[str] = None


@dataclass
class OperationCommand:
    """
    操作指令
    row: 行号
    fields: 列号(从1开始) -> 值
    """
    kind: OperationKind
    panel: str
    row: int
    fields: Dict[int, str] = field(default_factory=dict)
    source: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "panel": self.panel,
            "row": self.row,
            "fields": {str(k): v for k, v in self.fields.items()},
        }


@dataclass
class ParsedPanelSet:
    """面板ID -> 字段映射"""
    panels: Dict[str, FieldMap] = field(default_factory=dict)

    def merge(self, other: "ParsedPanelSet") -> None:
        """合并另一组面板数据，同名字段以后者为准"""
        for panel_id, fields in other.panels.items():
            self.panels.setdefault(panel_id, {}).update(fields)

    def get(self, panel_id: str) -> Optional[FieldMap]:
        return self.panels.get(panel_id)

    def __contains__(self, panel_id: str) -> bool:
        return panel_id in self.panels

    def __iter__(self) -> Iterator[str]:
        return iter(self.panels)

    def __len__(self) -> int:
        return len(self.panels)

    def to_dict(self) -> Dict[str, FieldMap]:
        return {panel_id: dict(fields) for panel_id, fields in self.panels.items()}


@dataclass
class FormatAttempt:
    """一次格式解析尝试的记录，用于追溯最终失败的原因"""
    format: Format
    ok: bool
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"format": self.format.value, "ok": self.ok, "reason": self.reason}


# ============================================
# 解析结果
# ============================================

@dataclass
class ParseOutcome:
    kind: ClassVar[OutcomeKind]

    @property
    def is_success(self) -> bool:
        return self.kind in (OutcomeKind.PANEL_DATA, OutcomeKind.DIRECTIVES)

    def copy(self) -> "ParseOutcome":
        """复制结果中的可变容器，缓存中保存和返回的都是副本"""
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value}


@dataclass
class NoBlockFound(ParseOutcome):
    """没有找到可识别的数据块，这是正常情况"""
    kind: ClassVar[OutcomeKind] = OutcomeKind.NO_BLOCK
    reason: str = "no data block"
    attempts: List[FormatAttempt] = field(default_factory=list)

    def copy(self) -> "NoBlockFound":
        return replace(self, attempts=[replace(a) for a in self.attempts])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason
        data["attempts"] = [a.to_dict() for a in self.attempts]
        return data


@dataclass
class PanelData(ParseOutcome):
    """
    属性格式的解析结果
    violations: 被丢弃的未知面板/字段
    """
    kind: ClassVar[OutcomeKind] = OutcomeKind.PANEL_DATA
    panels: ParsedPanelSet = field(default_factory=ParsedPanelSet)
    violations: List[SchemaViolationError] = field(default_factory=list)

    @property
    def panel_count(self) -> int:
        return len(self.panels)

    def copy(self) -> "PanelData":
        return replace(self, panels=ParsedPanelSet(self.panels.to_dict()), violations=list(self.violations))

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["panels"] = self.panels.to_dict()
        data["violations"] = [v.to_dict() for v in self.violations]
        return data


@dataclass
class Directives(ParseOutcome):
    kind: ClassVar[OutcomeKind] = OutcomeKind.DIRECTIVES
    commands: List[OperationCommand] = field(default_factory=list)

    @property
    def operation_count(self) -> int:
        return len(self.commands)

    def copy(self) -> "Directives":
        return replace(self, commands=[replace(c, fields=dict(c.fields)) for c in self.commands])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["commands"] = [c.to_dict() for c in self.commands]
        return data


@dataclass
class Rejected(ParseOutcome):
    """数据块违反了结构约定，调用方必须把 error 反馈给上游"""
    kind: ClassVar[OutcomeKind] = OutcomeKind.REJECTED
    error: Optional[InfobarError] = None

    @property
    def reason(self) -> str:
        return self.error.message if self.error else ""

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["error"] = self.error.to_dict() if self.error else None
        return data


# ============================================
# 事件
# ============================================

@dataclass
class ParsedEvent:
    """解析成功事件"""
    outcome: ParseOutcome
    panel_count: int = 0
    operation_count: int = 0
    message_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RejectedEvent:
    error: InfobarError
    message_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class ParserErrorEvent:
    """解析器内部异常事件"""
    error: str
    count: int
    message_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


Handler = Callable[[Any], None]


class EventBus:
    """
    简单的同步事件总线
    处理函数抛出的异常只记录日志，不影响解析流程
    """

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = {}

    def on(self, event_name: str, handler: Handler) -> None:
        self._handlers.setdefault(event_name, []).append(handler)

    def off(self, event_name: str, handler: Handler) -> None:
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event_name: str, payload: Any) -> None:
        for handler in list(self._handlers.get(event_name, [])):
            try:
                handler(payload)
            except Exception as e:
                logger.error(f"事件处理函数执行失败 [{event_name}]: {e}", exc_info=True)
