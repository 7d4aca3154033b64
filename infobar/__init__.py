"""
infobar-parser
从模型生成的文本中提取面板数据，并按当前启用的面板结构进行校验
"""
from .core.events import (
    Directives,
    EventBus,
    NoBlockFound,
    OperationCommand,
    OperationKind,
    PanelData,
    ParsedPanelSet,
    ParseOutcome,
    Rejected,
)
from .core.exceptions import (
    ColumnOutOfRangeError,
    InfobarError,
    MalformedDirectiveError,
    SchemaConfigError,
    SchemaViolationError,
    UnknownFieldError,
    UnknownPanelError,
)
from .parsing import InfobarParser, clear_cache, get_parser, parse
from .schema import FieldDescriptor, PanelSchema, Schema, load_schema, schema_from_mapping

__version__ = "0.1.0"

__all__ = [
    "InfobarParser",
    "get_parser",
    "parse",
    "clear_cache",
    # 结果
    "ParseOutcome",
    "NoBlockFound",
    "PanelData",
    "Directives",
    "Rejected",
    "ParsedPanelSet",
    "OperationCommand",
    "OperationKind",
    "EventBus",
    # 面板结构
    "Schema",
    "PanelSchema",
    "FieldDescriptor",
    "load_schema",
    "schema_from_mapping",
    # 错误
    "InfobarError",
    "SchemaConfigError",
    "MalformedDirectiveError",
    "SchemaViolationError",
    "UnknownPanelError",
    "UnknownFieldError",
    "ColumnOutOfRangeError",
]
