"""
解析引擎
把一条模型消息解析为 ParseOutcome：

    消息文本 -> 标签区域 -> 格式检测 -> 面板解析/指令解析 -> 结构校验 -> 规范化 -> 结果

面板结构由调用方在每次调用时传入，引擎本身只持有结果缓存和统计。
"""
from dataclasses import asdict
from typing import Any, Dict, Hashable, List, Optional

from ..core import Settings, get_logger, get_settings
from ..core.events import (
    EVENT_DATA_PARSED,
    EVENT_DATA_REJECTED,
    EVENT_PARSER_ERROR,
    Directives,
    EventBus,
    Format,
    FormatAttempt,
    NoBlockFound,
    OperationCommand,
    PanelData,
    ParsedEvent,
    ParsedPanelSet,
    ParseOutcome,
    ParserErrorEvent,
    Rejected,
    RejectedEvent,
)
from ..core.exceptions import MalformedDirectiveError, SchemaViolationError
from ..schema import Schema
from ..utils.parse_stats import ParseStats, ParseStatsTracker
from .cache import ParseCache, make_cache_key
from .detector import (
    comment_segments,
    detect_format,
    has_directive_lines,
    has_panel_structure,
    rejection_reason,
    strip_comment_markers,
    text_outside_comments,
)
from .directive_parser import parse_directive_block
from .normalizer import normalize_panels
from .panel_parser import parse_panel_block
from .region import extract_region
from .validator import combine_violations, validate_directives, validate_panels

logger = get_logger(__name__)

INTERNAL_FAILURE_REASON = "internal parse failure"


class InfobarParser:
    """
    面板数据解析器
    一个宿主会话通常只需要一个实例，切换聊天上下文时调用 clear_cache()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        event_bus: Optional[EventBus] = None,
        cache: Optional[ParseCache] = None,
    ):
        self.settings = settings or get_settings()
        self.config = self.settings.parser
        self.events = event_bus or EventBus()
        self.cache = cache or ParseCache(self.config.cache_capacity)
        self.stats = ParseStatsTracker()

    # ============================================
    # 对外接口
    # ============================================

    def parse(
        self,
        message_text: str,
        schema: Schema,
        message_id: Optional[Hashable] = None,
        skip_if_cached: bool = True,
    ) -> ParseOutcome:
        """
        解析一条消息
        - 没有数据块或内容是叙述文字：NoBlockFound
        - 属性格式：PanelData
        - 操作指令：Directives
        - 违反面板结构或指令语法错误：Rejected，调用方需要把错误反馈给上游
        给出 message_id 时结果按 (message_id, 内容哈希) 缓存，缓存保存的是副本，修改返回值不影响后续命中
        """
        message_text = message_text or ""
        cache_key = make_cache_key(message_id, message_text) if message_id is not None else None

        if cache_key is not None and skip_if_cached:
            cached = self.cache.get(cache_key)
            if cached is not None:
                self.stats.record_cache_hit()
                logger.debug(f"消息 {message_id} 命中解析缓存")
                return cached.copy()

        self.stats.record_attempt()
        event_id = None if message_id is None else str(message_id)

        try:
            outcome = self._parse_text(message_text, schema)
        except (MalformedDirectiveError, SchemaViolationError) as e:
            outcome = Rejected(error=e)
        except Exception as e:
            count = self.stats.record_error()
            logger.error(f"解析消息时发生异常: {e}", exc_info=True)
            self.events.emit(EVENT_PARSER_ERROR, ParserErrorEvent(error=str(e), count=count, message_id=event_id))
            return NoBlockFound(reason=INTERNAL_FAILURE_REASON)

        self._report(outcome, event_id)

        if cache_key is not None:
            self.cache.put(cache_key, outcome.copy())
        return outcome

    def clear_cache(self) -> None:
        """清空结果缓存，宿主切换聊天上下文时调用"""
        self.cache.clear()

    def get_stats(self) -> ParseStats:
        return self.stats.get_stats()

    def reset_stats(self) -> None:
        self.stats.reset()

    def get_status(self, schema: Optional[Schema] = None) -> Dict[str, Any]:
        """解析器状态，传入 schema 时附带面板数量"""
        stats = self.get_stats()
        status = {
            "tag_name": self.config.tag_name,
            "error_count": stats.errors,
            "stats": {**asdict(stats), "success_rate": round(stats.success_rate, 2)},
            "cache_size": len(self.cache),
            "cache_capacity": self.cache.capacity,
        }
        status["stats"]["start_time"] = stats.start_time.isoformat()
        if schema is not None:
            status["supported_panels_count"] = len(schema.supported_panels)
        return status

    # ============================================
    # 解析流程
    # ============================================

    def _parse_text(self, message_text: str, schema: Schema) -> ParseOutcome:
        block = extract_region(
            message_text,
            tag_name=self.config.tag_name,
            min_partial_length=self.config.min_partial_length,
            allow_partial=self.config.allow_partial_tags,
        )
        if block is None:
            return NoBlockFound(reason="no data block")

        if block.partial:
            logger.info(f"数据块缺少{'结束' if block.missing == 'close' else '开始'}标签，按截断内容解析")

        attempts: List[FormatAttempt] = []
        outcome = self._parse_block(block.content, schema, attempts)
        if outcome is not None:
            return outcome

        reason = attempts[-1].reason if attempts else "no recognizable data format"
        return NoBlockFound(reason=reason, attempts=attempts)

    def _parse_block(self, content: str, schema: Schema, attempts: List[FormatAttempt]) -> Optional[ParseOutcome]:
        """
        按检测到的格式解析数据块：
        1. 注释包裹：逐段解析，全部落空时去掉注释标记再按普通数据块解析
        2. 操作指令（包括形似指令的错误行）：解析并校验指令
        3. 属性格式：解析面板、校验、规范化
        """
        data_format = detect_format(content)

        if data_format is Format.COMMENT_WRAPPED:
            outcome = self._parse_comment_segments(content, schema, attempts)
            if outcome is not None:
                return outcome
            content = strip_comment_markers(content)
            data_format = detect_format(content)
            logger.debug(f"注释段未解析出数据，去掉注释标记后重试: {data_format.value}")

        if data_format in (Format.OPERATION_COMMANDS, Format.MALFORMED_DIRECTIVES):
            commands = parse_directive_block(content)
            return self._finish_directives(commands, schema, attempts, data_format)

        if data_format is Format.PLAIN_ATTRIBUTES:
            return self._finish_panels(parse_panel_block(content), schema, attempts, data_format)

        attempts.append(FormatAttempt(Format.REJECTED, False, rejection_reason(content)))
        return None

    def _parse_comment_segments(
        self, content: str, schema: Schema, attempts: List[FormatAttempt]
    ) -> Optional[ParseOutcome]:
        """
        各注释段独立检测，面板数据合并
        注释内外只要出现操作指令（或形似指令的行），就按出现顺序解析整个数据块的指令
        """
        segments = comment_segments(content)
        outside = text_outside_comments(content)

        if has_directive_lines(outside) or any(has_directive_lines(segment) for segment in segments):
            commands = parse_directive_block(strip_comment_markers(content))
            if any(has_panel_structure(part) for part in segments + [outside]):
                logger.warning("数据块同时包含操作指令和面板数据，忽略面板数据")
            return self._finish_directives(commands, schema, attempts, Format.COMMENT_WRAPPED)

        collected = ParsedPanelSet()
        for index, segment in enumerate(segments, start=1):
            if detect_format(segment) is Format.PLAIN_ATTRIBUTES:
                collected.merge(ParsedPanelSet(parse_panel_block(segment)))
            else:
                logger.debug(f"第 {index} 个注释段不是数据: {rejection_reason(segment)}")

        if collected:
            return self._finish_panels(collected.panels, schema, attempts, Format.COMMENT_WRAPPED)

        attempts.append(FormatAttempt(Format.COMMENT_WRAPPED, False, "no data in comment segments"))
        return None

    def _finish_directives(
        self,
        commands: List[OperationCommand],
        schema: Schema,
        attempts: List[FormatAttempt],
        data_format: Format,
    ) -> Optional[ParseOutcome]:
        if not commands:
            attempts.append(FormatAttempt(data_format, False, "no operation commands"))
            return None

        validate_directives(commands, schema)
        attempts.append(FormatAttempt(data_format, True))
        return Directives(commands=commands)

    def _finish_panels(
        self,
        raw_panels: Dict[str, Dict[str, str]],
        schema: Schema,
        attempts: List[FormatAttempt],
        data_format: Format,
    ) -> Optional[ParseOutcome]:
        if not raw_panels:
            attempts.append(FormatAttempt(data_format, False, "no panel fields"))
            return None

        accepted, violations = validate_panels(
            raw_panels,
            schema,
            strict_fields=self.config.strict_fields,
            aliases=self.config.entity_aliases,
        )
        panels = normalize_panels(
            accepted,
            schema,
            aliases=self.config.entity_aliases,
            connectives=self.config.connective_words,
        )

        if not panels:
            if violations:
                raise combine_violations(violations)
            attempts.append(FormatAttempt(data_format, False, "no panel fields after normalization"))
            return None

        attempts.append(FormatAttempt(data_format, True))
        return PanelData(panels=ParsedPanelSet(panels), violations=violations)

    def _report(self, outcome: ParseOutcome, message_id: Optional[str]) -> None:
        """更新统计并通知下游"""
        if isinstance(outcome, Rejected):
            self.stats.record_rejection()
            logger.error(f"数据块被拒绝: {outcome.reason}")
            self.events.emit(EVENT_DATA_REJECTED, RejectedEvent(error=outcome.error, message_id=message_id))
            return

        if isinstance(outcome, PanelData):
            self.stats.record_success()
            logger.info(f"解析完成，包含 {outcome.panel_count} 个面板")
            self.events.emit(
                EVENT_DATA_PARSED,
                ParsedEvent(outcome=outcome, panel_count=outcome.panel_count, message_id=message_id),
            )
        elif isinstance(outcome, Directives):
            self.stats.record_success()
            logger.info(f"解析完成，包含 {outcome.operation_count} 个操作指令")
            self.events.emit(
                EVENT_DATA_PARSED,
                ParsedEvent(outcome=outcome, operation_count=outcome.operation_count, message_id=message_id),
            )
        else:
            logger.debug(f"未解析出数据: {getattr(outcome, 'reason', '')}")


# ============================================
# 便捷函数
# ============================================

_default_parser: Optional[InfobarParser] = None


def get_parser() -> InfobarParser:
    """获取共享的默认解析器"""
    global _default_parser
    if _default_parser is None:
        _default_parser = InfobarParser()
    return _default_parser


def parse(
    message_text: str,
    schema: Schema,
    message_id: Optional[Hashable] = None,
    skip_if_cached: bool = True,
) -> ParseOutcome:
    return get_parser().parse(message_text, schema, message_id=message_id, skip_if_cached=skip_if_cached)


def clear_cache() -> None:
    get_parser().clear_cache()
