"""
标签区域提取
定位 <tag>...</tag> 之间的内容；模型输出被截断、缺少一侧标签时，按内容长度决定是否仍然接受
"""
import re
from typing import Optional

from ..core import get_logger
from ..core.events import RawBlock

logger = get_logger(__name__)

DEFAULT_MIN_PARTIAL_LENGTH = 20


def _tag_patterns(tag_name: str):
    escaped = re.escape(tag_name)
    return (
        re.compile(rf"<{escaped}\s*>", re.IGNORECASE),
        re.compile(rf"</\s*{escaped}\s*>", re.IGNORECASE),
    )


def extract_region(
    text: str,
    tag_name: str = "infobar_data",
    min_partial_length: int = DEFAULT_MIN_PARTIAL_LENGTH,
    allow_partial: bool = True,
) -> Optional[RawBlock]:
    """
    提取标签区域
    - 开始、结束标签都存在：取两者之间的内容
    - 只有开始标签：取其后的全部内容（长度需超过阈值）
    - 只有结束标签：取其前的全部内容（长度需超过阈值）
    - 都不存在：返回 None
    """
    if not text:
        return None

    open_pattern, close_pattern = _tag_patterns(tag_name)
    open_match = open_pattern.search(text)

    if open_match:
        close_match = close_pattern.search(text, open_match.end())
        if close_match:
            content = text[open_match.end():close_match.start()].strip()
            logger.debug(f"提取到 {tag_name} 内容，长度: {len(content)}")
            return RawBlock(content=content)

        if not allow_partial:
            logger.debug(f"{tag_name} 缺少结束标签，已禁用截断内容捕获")
            return None

        content = text[open_match.end():].strip()
        if len(content) > min_partial_length:
            logger.info(f"{tag_name} 缺少结束标签，按截断内容处理，长度: {len(content)}")
            return RawBlock(content=content, partial=True, missing="close")
        logger.debug(f"{tag_name} 缺少结束标签且内容过短({len(content)})，忽略")
        return None

    close_match = close_pattern.search(text)
    if close_match:
        if not allow_partial:
            logger.debug(f"{tag_name} 缺少开始标签，已禁用截断内容捕获")
            return None

        content = text[:close_match.start()].strip()
        if len(content) > min_partial_length:
            logger.info(f"{tag_name} 缺少开始标签，按截断内容处理，长度: {len(content)}")
            return RawBlock(content=content, partial=True, missing="open")
        logger.debug(f"{tag_name} 缺少开始标签且内容过短({len(content)})，忽略")
        return None

    return None
