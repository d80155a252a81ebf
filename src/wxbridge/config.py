"""
配置管理模块

从 .env 文件和环境变量中读取运行时配置路径。
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# 加载项目根目录下的 .env 文件（如果存在）
project_root = Path(__file__).parent.parent.parent
dotenv_path = project_root / ".env"
load_dotenv(dotenv_path=dotenv_path)


def get_config_path() -> Path:
    """
    获取账号配置文件路径

    优先级:
    1. 环境变量 WXBRIDGE_CONFIG
    2. 默认值: config/wechat.yaml (相对当前目录)

    Returns:
        配置文件路径
    """
    configured = os.getenv("WXBRIDGE_CONFIG")
    if configured:
        return Path(configured)
    return Path("config/wechat.yaml")
