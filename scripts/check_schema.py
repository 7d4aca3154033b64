"""
面板结构检查工具
加载面板结构 YAML，列出启用的面板以及操作指令使用的列号映射

用法:
  python scripts/check_schema.py schema.example.yaml
  python scripts/check_schema.py            # 使用 config.yaml 中的 schema_path
"""
import argparse
import sys
from pathlib import Path

# 添加项目根目录到路径
sys.path.append(str(Path(__file__).parent.parent))

from infobar.core.config import get_settings
from infobar.core.exceptions import SchemaConfigError
from infobar.core.logger import get_logger
from infobar.schema import Schema, load_schema

logger = get_logger("check_schema")


def print_schema(schema: Schema) -> None:
    print(f"启用的面板: {len(schema.panels)}")
    for panel_id in sorted(schema.panels):
        panel = schema.panels[panel_id]
        flags = f" [多实体: {panel.canonical_prefix}N.]" if panel.multi_entity else ""
        print(f"\n  {panel_id}{flags}")

        column_map = panel.column_map()
        if not column_map:
            print("    (没有启用的字段)")
            continue

        for column, key in column_map.items():
            field = panel.enabled_fields[column - 1]
            label = f" ({field.display_name})" if field.display_name and field.display_name != key else ""
            print(f"    {column:>2}. {key}{label}")

        disabled = [item.key for item in panel.sub_items if not item.enabled]
        if disabled:
            print(f"    未启用: {', '.join(disabled)}")


def main() -> int:
    parser = argparse.ArgumentParser(description="检查面板结构文件")
    parser.add_argument("path", nargs="?", help="面板结构 YAML (默认: config.yaml 中的 schema_path)")
    args = parser.parse_args()

    settings = get_settings()
    path = settings.get_absolute_path(args.path) if args.path else settings.get_schema_path()
    if path is None:
        print("❌ 未指定面板结构文件")
        return 1

    try:
        schema = load_schema(path)
    except SchemaConfigError as e:
        logger.error(e.message)
        print(f"❌ {e.message}")
        return 1

    print(f"面板结构: {path}")
    print_schema(schema)
    return 0


if __name__ == "__main__":
    sys.exit(main())
