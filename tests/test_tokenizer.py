"""
测试字段分词器
"""

# 添加项目根目录到路径
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from infobar.parsing.tokenizer import (
    parse_field_map,
    read_quoted_value,
    serialize_fields,
    tokenize_fields,
    unescape_quotes,
)


def test_simple_pairs():
    assert tokenize_fields('name="张三", age="25"') == [("name", "张三"), ("age", "25")]


def test_doubled_quote_is_literal():
    """值中的 "" 解析为一个引号"""
    assert tokenize_fields('quote="a""b"') == [("quote", 'a"b')]
    assert tokenize_fields('text="value with ""quoted"" text"') == [("text", 'value with "quoted" text')]


def test_unescape_is_idempotent_on_result():
    value = tokenize_fields('q="a""b"')[0][1]
    assert unescape_quotes(value) == value
    assert unescape_quotes(unescape_quotes('a""b')) == unescape_quotes('a""b')


def test_comma_inside_quotes_is_content():
    assert parse_field_map('name="Alice, Bob", hp="10, 8"') == {"name": "Alice, Bob", "hp": "10, 8"}


def test_unbalanced_inner_quote_is_content():
    """引号后面不是分隔符时按内容处理"""
    assert tokenize_fields('say="他说"你好"了", next="1"') == [("say", '他说"你好"了'), ("next", "1")]


def test_field_without_quote_is_skipped():
    assert tokenize_fields('a=1, b="2", c=oops, d="4"') == [("b", "2"), ("d", "4")]


def test_empty_key_is_skipped():
    assert tokenize_fields('="x", k="v"') == [("k", "v")]


def test_fragment_without_equals_stops():
    assert tokenize_fields('k="v", trailing words') == [("k", "v")]


def test_unterminated_value_runs_to_end():
    assert tokenize_fields('name="张三", note="被截断的内容') == [("name", "张三"), ("note", "被截断的内容")]


def test_full_width_comma_separates_fields():
    assert tokenize_fields('a="1"，b="2"') == [("a", "1"), ("b", "2")]


def test_whitespace_around_equals():
    assert tokenize_fields('  key  =  "v" ') == [("key", "v")]


def test_later_duplicate_wins():
    assert parse_field_map('hp="10", hp="8"') == {"hp": "8"}


def test_read_quoted_value_position():
    value, next_index = read_quoted_value('"abc", x', 0)
    assert value == "abc"
    assert next_index == 5


def test_serialize_round_trip():
    """写回后再分词得到相同的字段"""
    pairs = [("name", "张三"), ("quote", 'he said "hi"'), ("list", "a, b"), ("edge", '"')]
    assert tokenize_fields(serialize_fields(pairs)) == pairs
