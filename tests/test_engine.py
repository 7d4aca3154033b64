"""
测试解析引擎
"""

# 添加项目根目录到路径
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from infobar.core.events import (
    EVENT_DATA_PARSED,
    EVENT_DATA_REJECTED,
    EVENT_PARSER_ERROR,
    Directives,
    EventBus,
    Format,
    NoBlockFound,
    OperationKind,
    OutcomeKind,
    PanelData,
    Rejected,
)
from infobar.core.exceptions import (
    ColumnOutOfRangeError,
    MalformedDirectiveError,
    SchemaViolationGroup,
    UnknownFieldError,
    UnknownPanelError,
)
from infobar.parsing.cache import ParseCache
from infobar.parsing.engine import INTERNAL_FAILURE_REASON, InfobarParser


def wrap(content: str) -> str:
    return f"她推开了酒馆的门。\n<infobar_data>\n{content}\n</infobar_data>\n"


@pytest.fixture
def parser(settings):
    return InfobarParser(settings=settings)


def test_no_tags_returns_no_block(parser, schema):
    outcome = parser.parse("只是一段普通的回复。", schema)
    assert isinstance(outcome, NoBlockFound)
    assert not outcome.is_success
    assert parser.get_stats().total_parsed == 1
    assert parser.get_stats().errors == 0


def test_plain_attributes(parser, schema):
    outcome = parser.parse(wrap('personal: name="张三", age="25"\nworld: location="酒馆", time="黄昏"'), schema)
    assert isinstance(outcome, PanelData)
    assert outcome.panels.to_dict() == {
        "personal": {"name": "张三", "age": "25"},
        "world": {"location": "酒馆", "time": "黄昏"},
    }
    assert outcome.panel_count == 2
    assert outcome.violations == []


def test_merged_entities_are_split(parser, schema):
    outcome = parser.parse(wrap('roster: name="Alice, Bob", hp="10, 8"'), schema)
    assert outcome.panels.get("roster") == {
        "entity0.name": "Alice",
        "entity1.name": "Bob",
        "entity0.hp": "10",
        "entity1.hp": "8",
    }


def test_entity_prefixes_use_panel_prefix(parser, schema):
    outcome = parser.parse(wrap('interaction: NPC_1.name="李四", npc0.name="王五", attitude="友好"'), schema)
    assert outcome.panels.get("interaction") == {
        "npc0.name": "王五",
        "npc0.attitude": "友好",
        "npc1.name": "李四",
        "npc1.attitude": "友好",
    }


def test_unknown_panel_alone_is_rejected(parser, schema):
    outcome = parser.parse(wrap('ghost_panel: x="1"'), schema)
    assert isinstance(outcome, Rejected)
    assert isinstance(outcome.error, UnknownPanelError)
    assert outcome.error.panel == "ghost_panel"
    assert "ghost_panel" in outcome.reason


def test_unknown_panel_is_absent_from_accepted_result(parser, schema):
    outcome = parser.parse(wrap('ghost_panel: x="1"\npersonal: name="张三"'), schema)
    assert isinstance(outcome, PanelData)
    assert "ghost_panel" not in outcome.panels
    assert [v.panel for v in outcome.violations] == ["ghost_panel"]


def test_unknown_fields_are_reported(parser, schema):
    outcome = parser.parse(wrap('personal: 姓名="张三", secret="x"'), schema)
    assert outcome.panels.get("personal") == {"name": "张三"}
    assert isinstance(outcome.violations[0], UnknownFieldError)

    rejected = parser.parse(wrap('personal: secret="x", hidden="y"'), schema)
    assert isinstance(rejected, Rejected)
    assert isinstance(rejected.error, SchemaViolationGroup)


def test_directives(parser, schema):
    outcome = parser.parse(wrap('update roster(2 {"1","Alice","3","42"})\ndelete tasks(1)'), schema)
    assert isinstance(outcome, Directives)
    assert outcome.operation_count == 2
    assert outcome.commands[0].kind is OperationKind.UPDATE
    assert outcome.commands[0].row == 2
    assert outcome.commands[0].fields == {1: "Alice", 3: "42"}
    assert outcome.commands[1].fields == {}


def test_directive_column_out_of_range_is_rejected(parser, schema):
    outcome = parser.parse(wrap('update roster(2 {"1","Alice","5","42"})'), schema)
    assert isinstance(outcome, Rejected)
    assert isinstance(outcome.error, ColumnOutOfRangeError)
    assert "roster" in outcome.reason
    assert "valid range 1-3" in outcome.reason
    assert outcome.to_dict()["error"]["code"] == "column_out_of_range"


def test_malformed_directive_is_rejected(parser, schema):
    outcome = parser.parse(wrap('add personal 1 {"1","张三"}'), schema)
    assert isinstance(outcome, Rejected)
    assert isinstance(outcome.error, MalformedDirectiveError)

    outcome = parser.parse(wrap('add personal(1 {"name","张三"})'), schema)
    assert isinstance(outcome.error, MalformedDirectiveError)


def test_comment_segments_are_merged(parser, schema):
    text = wrap('<!--\npersonal: name="张三"\n-->\n<!--\nworld: location="酒馆"\n-->')
    outcome = parser.parse(text, schema)
    assert isinstance(outcome, PanelData)
    assert set(outcome.panels) == {"personal", "world"}


def test_comment_directives_concatenated_in_order(parser, schema):
    text = wrap('<!-- add tasks(1 {"1","找书"}) -->\n<!-- delete tasks(3) -->')
    outcome = parser.parse(text, schema)
    assert [c.kind for c in outcome.commands] == [OperationKind.ADD, OperationKind.DELETE]


def test_directive_outside_comments_is_not_dropped(parser, schema):
    """注释段里有面板数据时，注释外的指令仍然要解析和校验"""
    text = wrap('<!-- personal: name="张三" -->\nupdate roster(2 {"1","Alice","9","x"})')
    outcome = parser.parse(text, schema)
    assert isinstance(outcome, Rejected)
    assert isinstance(outcome.error, ColumnOutOfRangeError)

    text = wrap('<!-- add tasks(1 {"1","找书"}) -->\nupdate roster(2 {"1","Alice"})\n<!-- world: location="酒馆" -->')
    outcome = parser.parse(text, schema)
    assert isinstance(outcome, Directives)
    assert [(c.kind, c.panel) for c in outcome.commands] == [
        (OperationKind.ADD, "tasks"),
        (OperationKind.UPDATE, "roster"),
    ]


def test_comment_fallback_to_direct_block(parser, schema):
    """注释段里没有数据时，去掉注释标记后按普通数据块解析"""
    outcome = parser.parse(wrap('<!-- 以下为面板数据 -->\npersonal: name="张三"'), schema)
    assert isinstance(outcome, PanelData)
    assert outcome.panels.get("personal") == {"name": "张三"}


def test_narrative_block_is_no_block(parser, schema):
    outcome = parser.parse(wrap("她感到一阵温柔的愉悦，享受着这一刻的宁静。"), schema)
    assert isinstance(outcome, NoBlockFound)
    assert outcome.reason == "narrative prose"
    assert outcome.attempts[-1].format is Format.REJECTED


def test_prose_starting_with_operation_word_is_no_block(parser, schema):
    outcome = parser.parse(wrap("Update them (soon), the tavern is quiet tonight."), schema)
    assert isinstance(outcome, NoBlockFound)
    assert outcome.reason == "no recognizable data format"


def test_full_width_colon_block(parser, schema):
    outcome = parser.parse(wrap('personal：name="张三", age="25"'), schema)
    assert isinstance(outcome, PanelData)
    assert outcome.panels.get("personal") == {"name": "张三", "age": "25"}


def test_partial_block_is_parsed(parser, schema):
    outcome = parser.parse('正文\n<infobar_data>\npersonal: name="张三", age="25"', schema)
    assert isinstance(outcome, PanelData)


def test_cached_result_does_not_count(parser, schema):
    text = wrap('personal: name="张三"')
    first = parser.parse(text, schema, message_id="m1")
    second = parser.parse(text, schema, message_id="m1")
    assert second == first
    assert second is not first
    assert parser.get_stats().total_parsed == 1
    assert parser.get_stats().cache_hits == 1

    # 内容变化后重新解析
    parser.parse(wrap('personal: name="李四"'), schema, message_id="m1")
    assert parser.get_stats().total_parsed == 2

    parser.parse(text, schema, message_id="m1", skip_if_cached=False)
    assert parser.get_stats().total_parsed == 3


def test_cached_outcome_is_a_copy(parser, schema):
    text = wrap('update roster(2 {"1","Alice"})')
    first = parser.parse(wrap('personal: name="张三"'), schema, message_id="m1")
    first.panels.get("personal")["name"] = "改动"
    first.panels.panels["world"] = {"location": "改动"}
    second = parser.parse(wrap('personal: name="张三"'), schema, message_id="m1")
    assert second.panels.to_dict() == {"personal": {"name": "张三"}}

    first = parser.parse(text, schema, message_id="m2")
    first.commands[0].fields[1] = "改动"
    first.commands.clear()
    second = parser.parse(text, schema, message_id="m2")
    assert second.commands[0].fields == {1: "Alice"}
    assert parser.get_stats().cache_hits == 2


def test_cache_never_exceeds_capacity(settings, schema):
    parser = InfobarParser(settings=settings, cache=ParseCache(capacity=5))
    for index in range(12):
        parser.parse(wrap(f'personal: age="{index}"'), schema, message_id=index)
        assert len(parser.cache) <= 5
    assert parser.get_status(schema)["cache_size"] == 5

    parser.clear_cache()
    assert len(parser.cache) == 0


def test_events(settings, schema):
    bus = EventBus()
    parsed, rejected = [], []
    bus.on(EVENT_DATA_PARSED, parsed.append)
    bus.on(EVENT_DATA_REJECTED, rejected.append)
    parser = InfobarParser(settings=settings, event_bus=bus)

    parser.parse(wrap('personal: name="张三"\nworld: location="酒馆"'), schema, message_id=7)
    parser.parse(wrap('add ghost(1 {"1","x"})'), schema)
    parser.parse("没有数据", schema)

    assert len(parsed) == 1
    assert parsed[0].panel_count == 2
    assert parsed[0].message_id == "7"
    assert len(rejected) == 1
    assert isinstance(rejected[0].error, UnknownPanelError)


def test_failing_handler_does_not_break_parse(settings, schema):
    bus = EventBus()

    def broken(event):
        raise RuntimeError("handler failed")

    bus.on(EVENT_DATA_PARSED, broken)
    parser = InfobarParser(settings=settings, event_bus=bus)
    assert isinstance(parser.parse(wrap('personal: name="张三"'), schema), PanelData)


def test_internal_failure_degrades_to_no_block(settings):
    bus = EventBus()
    errors = []
    bus.on(EVENT_PARSER_ERROR, errors.append)
    parser = InfobarParser(settings=settings, event_bus=bus)

    outcome = parser.parse(wrap('personal: name="张三"'), None, message_id="broken")
    assert isinstance(outcome, NoBlockFound)
    assert outcome.reason == INTERNAL_FAILURE_REASON
    assert parser.get_stats().errors == 1
    assert errors[0].count == 1
    assert len(parser.cache) == 0


def test_stats_and_status(parser, schema):
    parser.parse(wrap('personal: name="张三"'), schema)
    parser.parse(wrap('ghost_panel: x="1"'), schema)
    stats = parser.get_stats()
    assert stats.total_parsed == 2
    assert stats.successful_parsed == 1
    assert stats.rejected == 1

    status = parser.get_status(schema)
    assert status["supported_panels_count"] == 5
    assert status["stats"]["success_rate"] == 50.0
    assert status["tag_name"] == "infobar_data"

    parser.reset_stats()
    assert parser.get_stats().total_parsed == 0


def test_outcome_kinds(parser, schema):
    assert parser.parse("", schema).kind is OutcomeKind.NO_BLOCK
    assert parser.parse(wrap('delete tasks(1)'), schema).to_dict() == {
        "kind": "directives",
        "commands": [{"kind": "delete", "panel": "tasks", "row": 1, "fields": {}}],
    }
