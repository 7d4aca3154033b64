"""
测试公共夹具
"""

# 添加项目根目录到路径
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from infobar.core.config import ParserConfig, ProjectConfig, Settings
from infobar.schema import schema_from_mapping


SCHEMA_DATA = {
    "panels": {
        "personal": {
            "fields": [
                {"key": "name", "display_name": "姓名"},
                {"key": "age", "display_name": "年龄"},
                {"key": "occupation", "display_name": "职业"},
                {"key": "mood", "display_name": "心情", "enabled": False},
            ]
        },
        "world": ["location", "time", "weather"],
        "interaction": {
            "entity_prefix": "npc",
            "fields": ["name", "relationship", "attitude"],
        },
        "tasks": ["title", "status", "reward"],
        "roster": {
            "multi_entity": True,
            "fields": ["name", "role", "hp"],
        },
    }
}


@pytest.fixture
def schema():
    return schema_from_mapping(SCHEMA_DATA)


@pytest.fixture
def settings():
    """不读取 config.yaml 的默认配置"""
    return Settings(project=ProjectConfig(log_to_file=False), parser=ParserConfig())
