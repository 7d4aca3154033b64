"""
配置读取模块
"""

import os
import yaml
from pathlib import Path
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator
from .logger import get_logger

# 初始化日志记录器
logger = get_logger(__name__)

# 项目根目录
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class ProjectConfig(BaseModel):
    """项目基础配置"""
    name: str = Field("infobar-parser", description="项目名称")
    debug: bool = Field(False, description="调试模式")
    log_to_file: bool = Field(True, description="是否写入 logs/ 目录下的日志文件")


class ParserConfig(BaseModel):
    """解析引擎配置"""
    tag_name: str = Field("infobar_data", description="数据块标签名")
    min_partial_length: int = Field(20, ge=0, description="标签不完整时，候选内容的最小长度")
    allow_partial_tags: bool = Field(True, description="是否允许只有开始或结束标签的截断数据块")
    cache_capacity: int = Field(100, ge=1, description="解析结果缓存容量")
    strict_fields: bool = Field(True, description="是否拒绝面板未启用的字段")
    connective_words: List[str] = Field(
        default_factory=lambda: [" and ", " & ", "以及"],
        description="多实体合并值的连接词分隔符",
    )
    entity_aliases: List[str] = Field(
        default_factory=lambda: ["entity", "npc", "org"],
        description="可被识别并规范化的实体前缀",
    )

    @field_validator("tag_name")
    @classmethod
    def strip_tag_brackets(cls, value: str) -> str:
        """允许配置写成 <infobar_data>"""
        value = value.strip().strip("<>").strip("/")
        if not value:
            raise ValueError("tag_name 不能为空")
        return value


# ============================================
# 主配置类
# ============================================

class Settings(BaseModel):
    """
    应用总配置
    """

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    parser: ParserConfig = Field(default_factory=ParserConfig)
    schema_path: Optional[str] = Field(None, description="默认面板结构文件（CLI 使用）")

    @property
    def PROJECT_NAME(self) -> str:
        """项目名称"""
        return self.project.name

    @property
    def DEBUG(self) -> bool:
        """调试模式"""
        return self.project.debug

    @classmethod
    def config_path(cls) -> Path:
        env_path = os.environ.get("INFOBAR_CONFIG")
        return Path(env_path) if env_path else PROJECT_ROOT / "config.yaml"

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """读取指定的 YAML 文件，文件不存在时抛出 FileNotFoundError"""
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    @classmethod
    def load_config(cls) -> "Settings":
        """
        读取 config.yaml (或 INFOBAR_CONFIG 指定的文件) 并实例化 Settings 对象
        """
        yaml_path = cls.config_path()
        if not yaml_path.exists():
            logger.warning(f"未找到 {yaml_path}，将使用默认配置")
            return cls()

        try:
            return cls.from_yaml(yaml_path)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"无法读取 {yaml_path.name}: {e}，将使用默认配置")
            return cls()

    def get_absolute_path(self, relative_path: str) -> Path:
        """
        将相对路径转换为绝对路径
        """
        path = Path(relative_path)
        return path if path.is_absolute() else PROJECT_ROOT / path

    def get_schema_path(self) -> Optional[Path]:
        """默认面板结构文件的绝对路径"""
        if not self.schema_path:
            return None
        return self.get_absolute_path(self.schema_path)

# 实例化配置 (导入时自动加载)
settings = Settings.load_config()


# ============================================
# 便捷函数
# ============================================

def get_settings() -> Settings:
    """
    获取全局配置实例
    """
    return settings


def reload_config() -> Settings:
    """
    重新加载配置
    """
    global settings
    settings = Settings.load_config()
    return settings
