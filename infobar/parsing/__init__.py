"""
Parsing 模块
从模型输出中提取、校验并规范化面板数据
"""
from .cache import ParseCache, make_cache_key
from .detector import DETECTION_RULES, DetectionRule, detect_format
from .directive_parser import parse_directive_block, parse_directive_line
from .engine import InfobarParser, clear_cache, get_parser, parse
from .normalizer import normalize_panels, split_merged_entities
from .panel_parser import parse_panel_block, parse_panel_line
from .region import extract_region
from .tokenizer import parse_field_map, serialize_fields, tokenize_fields, unescape_quotes
from .validator import validate_directives, validate_panels

__all__ = [
    # 引擎
    "InfobarParser",
    "get_parser",
    "parse",
    "clear_cache",
    # 各阶段
    "extract_region",
    "detect_format",
    "DetectionRule",
    "DETECTION_RULES",
    "tokenize_fields",
    "parse_field_map",
    "serialize_fields",
    "unescape_quotes",
    "parse_panel_line",
    "parse_panel_block",
    "parse_directive_line",
    "parse_directive_block",
    "validate_panels",
    "validate_directives",
    "normalize_panels",
    "split_merged_entities",
    # 缓存
    "ParseCache",
    "make_cache_key",
]
