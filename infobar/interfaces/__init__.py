"""
Interfaces 模块
接口层：命令行
"""
from .cli_runner import main

__all__ = [
    "main",
]
