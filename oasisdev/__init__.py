"""oasis-devenv：OASIS 开发环境编排工具"""

__version__ = "0.1.0"
