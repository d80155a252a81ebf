#!/usr/bin/env python3
"""wxbridge CLI 工具

在未安装包的情况下从仓库根目录运行:
    python cli.py --help
"""

from wxbridge.cli import cli

if __name__ == "__main__":
    cli()
