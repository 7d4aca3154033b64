"""
命令行解析工具
读取一条模型消息（文件或标准输入），按面板结构文件解析，以 JSON 输出结果

用法:
  infobar-parse message.txt --schema schema.yaml
  cat message.txt | infobar-parse --schema schema.yaml --stats

退出码: 0 解析出数据，1 没有数据块，2 数据块被拒绝
"""
import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from ..core import get_logger, get_settings
from ..core.events import OutcomeKind
from ..core.exceptions import SchemaConfigError
from ..parsing import InfobarParser
from ..schema import load_schema

logger = get_logger(__name__)

EXIT_DATA = 0
EXIT_NO_BLOCK = 1
EXIT_REJECTED = 2

EXIT_CODES = {
    OutcomeKind.PANEL_DATA: EXIT_DATA,
    OutcomeKind.DIRECTIVES: EXIT_DATA,
    OutcomeKind.NO_BLOCK: EXIT_NO_BLOCK,
    OutcomeKind.REJECTED: EXIT_REJECTED,
}


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="infobar-parse",
        description="从模型消息中提取并校验面板数据",
    )
    parser.add_argument("message", nargs="?", help="消息文件路径（省略或为 - 时读取标准输入）")
    parser.add_argument("-s", "--schema", help="面板结构 YAML 文件 (默认: config.yaml 中的 schema_path)")
    parser.add_argument("--message-id", help="消息ID，用于结果缓存")
    parser.add_argument("--tag", help="覆盖数据块标签名")
    parser.add_argument("--stats", action="store_true", help="输出解析统计")
    parser.add_argument("--indent", type=int, default=2, help="JSON 缩进 (默认: 2)")
    return parser


def _read_message(path: Optional[str]) -> str:
    if not path or path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _resolve_schema_path(arg: Optional[str]) -> Path:
    settings = get_settings()
    if arg:
        return settings.get_absolute_path(arg)
    path = settings.get_schema_path()
    if path is None:
        raise SchemaConfigError("未指定面板结构文件：请使用 --schema 或在 config.yaml 中设置 schema_path")
    return path


def main(argv: Optional[List[str]] = None) -> int:
    """主入口，返回退出码"""
    args = build_arg_parser().parse_args(argv)

    try:
        schema = load_schema(_resolve_schema_path(args.schema))
    except SchemaConfigError as e:
        logger.error(f"面板结构加载失败: {e.message}")
        print(f"❌ {e.message}", file=sys.stderr)
        return EXIT_REJECTED

    try:
        message_text = _read_message(args.message)
    except OSError as e:
        print(f"❌ 无法读取消息: {e}", file=sys.stderr)
        return EXIT_REJECTED

    settings = get_settings()
    if args.tag:
        settings = settings.model_copy(
            update={"parser": settings.parser.model_copy(update={"tag_name": args.tag.strip("<>/")})}
        )

    parser = InfobarParser(settings=settings)
    outcome = parser.parse(message_text, schema, message_id=args.message_id)

    output = outcome.to_dict()
    if args.stats:
        output["status"] = parser.get_status(schema)
    print(json.dumps(output, ensure_ascii=False, indent=args.indent))

    return EXIT_CODES[outcome.kind]


if __name__ == "__main__":
    sys.exit(main())
