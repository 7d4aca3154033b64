"""
异常定义
解析过程中需要显式上报给调用方的错误。字段级的格式问题在分词器内部就地恢复，不会走到这里。
"""
from typing import Any, Dict, Iterable, List, Optional


class InfobarError(Exception):
    """所有可上报错误的基类"""

    code = "infobar_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class SchemaConfigError(InfobarError):
    """面板结构（schema）输入本身不合法"""

    code = "schema_config"


class MalformedDirectiveError(InfobarError):
    """操作指令语法错误或数据参数无法解析"""

    code = "malformed_directive"

    def __init__(self, line: str, reason: str):
        self.line = line
        self.reason = reason
        super().__init__(
            f'Malformed directive "{line}": {reason}. '
            f'Expected: add panel(1 {{"1","value","2","value"}})'
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(line=self.line, reason=self.reason)
        return data


class SchemaViolationError(InfobarError):
    """数据引用了当前结构中不存在的面板或字段"""

    code = "schema_violation"

    def __init__(self, message: str, panel: str):
        super().__init__(message)
        self.panel = panel

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["panel"] = self.panel
        return data


class UnknownPanelError(SchemaViolationError):
    code = "unknown_panel"

    def __init__(self, panel: str, allowed: Iterable[str]):
        self.allowed = sorted(allowed)
        super().__init__(
            f'Unknown panel "{panel}"; enabled panels: {", ".join(self.allowed) or "(none)"}',
            panel,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["allowed"] = list(self.allowed)
        return data


class UnknownFieldError(SchemaViolationError):
    """属性格式中使用了面板未启用的字段"""

    code = "unknown_field"

    def __init__(self, panel: str, field: str, allowed: Iterable[str]):
        self.field = field
        self.allowed = list(allowed)
        super().__init__(
            f'Unknown field "{field}" in panel "{panel}"; '
            f'enabled fields: {", ".join(self.allowed) or "(none)"}',
            panel,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(field=self.field, allowed=list(self.allowed))
        return data


class ColumnOutOfRangeError(SchemaViolationError):
    """操作指令中的列号超出面板启用字段的范围"""

    code = "column_out_of_range"

    def __init__(self, panel: str, column: int, column_count: int):
        self.column = column
        self.column_count = column_count
        if column_count > 0:
            valid = f"valid range 1-{column_count}"
        else:
            valid = "panel has no enabled fields"
        super().__init__(
            f'Column {column} is out of range for panel "{panel}" ({valid})',
            panel,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(column=self.column, valid_range=[1, self.column_count])
        return data


class SchemaViolationGroup(SchemaViolationError):
    """同一次解析中出现的多个结构违规"""

    code = "schema_violations"

    def __init__(self, violations: List[SchemaViolationError]):
        self.violations = list(violations)
        first: Optional[SchemaViolationError] = self.violations[0] if self.violations else None
        message = "; ".join(v.message for v in self.violations)
        super().__init__(message, first.panel if first else "")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["violations"] = [v.to_dict() for v in self.violations]
        return data
