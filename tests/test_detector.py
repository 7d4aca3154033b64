"""
测试数据格式检测
"""

# 添加项目根目录到路径
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from infobar.core.events import Format
from infobar.parsing.detector import (
    DETECTION_RULES,
    DetectionRule,
    blank_quoted_values,
    comment_segments,
    detect_format,
    has_directive_lines,
    has_malformed_directives,
    has_operation_commands,
    has_panel_structure,
    is_narrative,
    rejection_reason,
    strip_comment_markers,
    text_outside_comments,
)


def test_operation_commands():
    block = 'add personal(1 {"1","张三","2","24"})\ndelete tasks(2)'
    assert has_operation_commands(block)
    assert detect_format(block) is Format.OPERATION_COMMANDS


def test_operation_commands_case_insensitive():
    assert detect_format('UPDATE roster(2 {"1","Alice"})') is Format.OPERATION_COMMANDS


def test_malformed_directives():
    for block in ('add personal 1 {"1","张三"}', 'add personal({"1","张三"})', 'update tasks{"1","x"}(1)'):
        assert has_malformed_directives(block), block
        assert detect_format(block) is Format.MALFORMED_DIRECTIVES


def test_valid_directive_line_wins_over_malformed():
    block = 'add personal(1 {"1","张三"})\nadd personal 2 {"1","李四"}'
    assert not has_malformed_directives(block)
    assert detect_format(block) is Format.OPERATION_COMMANDS


def test_plain_attributes():
    block = 'personal: name="张三", age="25"\nworld: location="酒馆"'
    assert has_panel_structure(block)
    assert detect_format(block) is Format.PLAIN_ATTRIBUTES


def test_full_width_colon_after_panel_name():
    block = 'personal：name="张三", age="25"'
    assert has_panel_structure(block)
    assert detect_format(block) is Format.PLAIN_ATTRIBUTES


def test_prose_starting_with_operation_word():
    """add/update/delete 开头的普通句子不是指令"""
    for block in ("Update them (soon), the tavern is quiet tonight.", "Delete {everything} later", "add more (later)"):
        assert not has_malformed_directives(block), block
        assert not has_directive_lines(block), block
        assert detect_format(block) is Format.REJECTED
    assert rejection_reason("Update them (soon), the tavern is quiet tonight.") == "no recognizable data format"


def test_comment_wrapped_has_priority():
    block = '<!--\nadd personal(1 {"1","张三"})\n-->'
    assert detect_format(block) is Format.COMMENT_WRAPPED


def test_comment_segments_in_order():
    block = '<!-- personal: name="A" -->\n正文\n<!--\nworld: location="B"\n-->'
    assert comment_segments(block) == ['personal: name="A"', 'world: location="B"']
    assert "<!--" not in strip_comment_markers(block)


def test_text_outside_comments():
    block = '<!-- personal: name="A" -->\nupdate roster(2 {"1","B"})\n<!-- world: location="C" -->'
    outside = text_outside_comments(block)
    assert outside == 'update roster(2 {"1","B"})'
    assert has_directive_lines(outside)
    assert not has_directive_lines(comment_segments(block)[0])


def test_narrative_prose_is_rejected():
    block = "她感到一阵温柔的愉悦，享受着这一刻的宁静。"
    assert is_narrative(block)
    assert detect_format(block) is Format.REJECTED
    assert rejection_reason(block) == "narrative prose"


def test_english_narrative():
    block = "She smiled softly and whispered a word of thanks."
    assert detect_format(block) is Format.REJECTED
    assert rejection_reason(block) == "narrative prose"


def test_narrative_words_inside_values_do_not_reject():
    """字段值中的叙述性文字不影响判定"""
    block = 'personal: name="张三", occupation="她温柔地期待着"'
    assert blank_quoted_values(block) == 'personal: name="", occupation=""'
    assert detect_format(block) is Format.PLAIN_ATTRIBUTES


def test_strong_narrative_with_panel_structure():
    block = 'thinking: (她很开心)\npersonal: name="张三"'
    assert detect_format(block) is Format.REJECTED


def test_unrecognized_and_empty():
    assert detect_format("") is Format.REJECTED
    assert rejection_reason("   ") == "empty block"
    assert rejection_reason("12345 67890") == "no recognizable data format"


def test_custom_rule_list():
    rules = [DetectionRule("always_plain", lambda block: True, Format.PLAIN_ATTRIBUTES)]
    assert detect_format("随便什么内容", rules) is Format.PLAIN_ATTRIBUTES
    assert [rule.format for rule in DETECTION_RULES] == [
        Format.COMMENT_WRAPPED,
        Format.OPERATION_COMMANDS,
        Format.MALFORMED_DIRECTIVES,
        Format.PLAIN_ATTRIBUTES,
    ]
