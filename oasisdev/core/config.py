"""集中配置管理

项目级常量（镜像名、目录布局、检查阈值等）集中在 DevEnvConfig，
支持从项目根目录的 oasisdev.yml 加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from oasisdev.core.exceptions import ConfigError
from oasisdev.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "oasisdev.yml"
CONFIG_ENV_VAR = "OASISDEV_CONFIG"


@dataclass
class DevEnvConfig:
    """项目全局配置"""

    project_root: str = "."

    # 容器运行时
    runtime_bin: str = "docker"
    image_name: str = "oasis-dev"
    image_tag: str = "latest"
    container_name: str = "oasis-dev"
    dockerfile: str = "Dockerfile"

    # 目录
    build_root: str = "build"
    volumes_dir: str = ".docker-volumes"
    volume_names: list[str] = field(default_factory=lambda: [
        "build-cache", "pip-cache", "cmake-cache", "vscode-extensions", "vscode-data",
    ])
    config_dir: str = "config"
    python_tests_dir: str = "tests/python"

    # 检查阈值
    min_runtime_version: str = "20.10"
    min_free_disk_gb: int = 4

    # 校验
    sdk_artifact: str = "/opt/spice/cspice/lib/cspice.a"

    # 构建 / 测试
    cmake_generator: str = "Ninja"
    cmake_definitions: dict[str, str] = field(default_factory=lambda: {
        "BUILD_PYTHON_BINDINGS": "ON",
        "BUILD_EXAMPLES": "ON",
    })
    coverage_package: str = "oasis"

    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def root(self) -> Path:
        """项目根目录的绝对路径；外部命令的 cwd 各不相同，参数中只传绝对路径"""
        return Path(self.project_root).resolve()

    @property
    def image_ref(self) -> str:
        return f"{self.image_name}:{self.image_tag}"

    @classmethod
    def from_file(cls, path: str | Path, project_root: str = "") -> DevEnvConfig:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except ValueError as e:
            raise ConfigError(str(e)) from e
        known = {f.name for f in fields(cls)} - {"extra"}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        if project_root:
            matched["project_root"] = project_root
        try:
            cfg = cls(**matched)
        except TypeError as e:
            raise ConfigError(f"配置文件 {path} 无效: {e}") from e
        cfg.extra = extra
        if not isinstance(cfg.min_free_disk_gb, int) or cfg.min_free_disk_gb < 0:
            raise ConfigError(f"min_free_disk_gb 必须为非负整数: {cfg.min_free_disk_gb!r}")
        return cfg

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# 全局实例，由 CLI 入口显式初始化
_current: DevEnvConfig | None = None


def get_config() -> DevEnvConfig:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = DevEnvConfig()
    return _current


def init_config(project_root: str = ".") -> DevEnvConfig:
    """从项目根目录（或 OASISDEV_CONFIG 指定路径）初始化全局配置"""
    global _current  # noqa: PLW0603
    path = os.getenv(CONFIG_ENV_VAR) or str(Path(project_root) / CONFIG_FILE_NAME)
    _current = DevEnvConfig.from_file(path, project_root=project_root)
    logger.debug("配置已加载: %s", path)
    return _current
