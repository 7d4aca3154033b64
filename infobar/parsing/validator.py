"""
结构校验
以调用方传入的面板结构快照为准，拒绝模型凭空创造的面板和字段，防止结构被悄悄扩张。

- 属性格式：未知面板/字段被丢弃并记录违规，交由引擎决定整体结果
- 操作指令：任何违规都会抛出结构化的错误，调用方必须反馈给上游
"""
from typing import Dict, List, Sequence, Tuple

from ..core import get_logger
from ..core.events import FieldMap, OperationCommand
from ..core.exceptions import (
    ColumnOutOfRangeError,
    SchemaViolationError,
    SchemaViolationGroup,
    UnknownFieldError,
    UnknownPanelError,
)
from ..schema import PanelSchema, Schema
from .normalizer import DEFAULT_ENTITY_ALIASES, entity_key, split_entity_key

logger = get_logger(__name__)


def _validate_fields(
    panel_name: str,
    panel: PanelSchema,
    fields: FieldMap,
    aliases: Sequence[str],
) -> Tuple[FieldMap, List[SchemaViolationError]]:
    allowed = [item.key for item in panel.enabled_fields]
    entity_aliases = tuple(aliases) + ((panel.canonical_prefix,) if panel.canonical_prefix else ())
    kept: FieldMap = {}
    violations: List[SchemaViolationError] = []

    for key, value in fields.items():
        key = key.strip()
        entity = split_entity_key(key, entity_aliases) if panel.multi_entity else None
        field_name = entity[2] if entity else key

        resolved = panel.resolve_field(field_name)
        if resolved is None:
            logger.warning(f"面板 {panel_name} 包含未启用的字段: {key}")
            violations.append(UnknownFieldError(panel_name, key, allowed))
            continue

        if entity:
            alias, index, _ = entity
            kept[entity_key(alias, index, resolved)] = value
        else:
            kept[resolved] = value

    return kept, violations


def validate_panels(
    raw_panels: Dict[str, FieldMap],
    schema: Schema,
    strict_fields: bool = True,
    aliases: Sequence[str] = DEFAULT_ENTITY_ALIASES,
) -> Tuple[Dict[str, FieldMap], List[SchemaViolationError]]:
    """
    校验属性格式的面板数据
    返回 (通过校验的面板, 违规列表)
    面板声明了启用字段且 strict_fields 为真时，字段名（或显示名称）必须是启用字段之一，显示名称会被替换为字段键
    """
    accepted: Dict[str, FieldMap] = {}
    violations: List[SchemaViolationError] = []

    for panel_name, fields in raw_panels.items():
        panel = schema.get_panel(panel_name)
        if panel is None:
            logger.warning(f"不支持的面板类型: {panel_name}，已拒绝")
            violations.append(UnknownPanelError(panel_name, schema.supported_panels))
            continue

        if not strict_fields or not panel.enabled_fields:
            accepted[panel_name] = dict(fields)
            continue

        kept, field_violations = _validate_fields(panel_name, panel, fields, aliases)
        violations.extend(field_violations)
        if kept:
            accepted[panel_name] = kept
        else:
            logger.warning(f"面板 {panel_name} 没有任何启用的字段，已丢弃")

    return accepted, violations


def collect_directive_violations(commands: List[OperationCommand], schema: Schema) -> List[SchemaViolationError]:
    violations: List[SchemaViolationError] = []

    for command in commands:
        if not schema.is_supported(command.panel):
            violations.append(UnknownPanelError(command.panel, schema.supported_panels))
            continue

        column_count = schema.column_count(command.panel)
        for column in sorted(command.fields):
            if column < 1 or column > column_count:
                violations.append(ColumnOutOfRangeError(command.panel, column, column_count))

    return violations


def validate_directives(commands: List[OperationCommand], schema: Schema) -> None:
    """
    校验操作指令，任何违规都会抛出异常
    单个违规抛出对应的错误，多个违规抛出 SchemaViolationGroup
    """
    violations = collect_directive_violations(commands, schema)
    if not violations:
        return

    for violation in violations:
        logger.error(f"操作指令校验失败: {violation.message}")

    raise combine_violations(violations)


def combine_violations(violations: List[SchemaViolationError]) -> SchemaViolationError:
    """把违规列表合并为一个可抛出的错误"""
    if len(violations) == 1:
        return violations[0]
    return SchemaViolationGroup(violations)
