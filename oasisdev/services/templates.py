"""默认配置模板（编辑器设置 + CMake 预设）

仅在文件不存在时写入，已存在的文件永不覆盖。
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from oasisdev.core.models import BuildLayout, Variant

logger = logging.getLogger(__name__)

VSCODE_SETTINGS_FILE = "vscode-settings.json"
CMAKE_PRESETS_FILE = "cmake-presets.json"

VSCODE_SETTINGS: dict[str, Any] = {
    "cmake.configureOnOpen": True,
    "cmake.buildDirectory": "${workspaceFolder}/build",
    "cmake.generator": "Ninja",
    "cmake.buildTask": True,
    "C_Cpp.default.compileCommands": "${workspaceFolder}/build/compile_commands.json",
    "C_Cpp.default.cppStandard": "c++17",
    "python.defaultInterpreterPath": "/usr/bin/python3",
    "python.linting.enabled": True,
    "python.linting.pylintEnabled": False,
    "python.linting.flake8Enabled": True,
    "python.formatting.provider": "black",
    "files.associations": {
        "*.hpp": "cpp",
        "*.tpp": "cpp",
    },
}


def cmake_presets(generator: str = "Ninja", build_root: str = "build") -> dict[str, Any]:
    """为每个变体生成一组 configure/build 预设，binaryDir 与 BuildLayout 一致"""
    layout = BuildLayout(Path(build_root))
    configure = []
    for variant in Variant:
        configure.append({
            "name": variant.dir_name,
            "displayName": f"{variant.value} Configuration",
            "generator": generator,
            "binaryDir": "${sourceDir}/" + layout[variant].as_posix(),
            "cacheVariables": {
                "CMAKE_BUILD_TYPE": variant.value,
                "CMAKE_EXPORT_COMPILE_COMMANDS": "ON",
                "BUILD_TESTING": "ON" if variant is Variant.DEBUG else "OFF",
            },
        })
    return {
        "version": 3,
        "configurePresets": configure,
        "buildPresets": [
            {"name": v.dir_name, "configurePreset": v.dir_name} for v in Variant
        ],
    }


def write_if_absent(path: Path, content: dict[str, Any]) -> bool:
    """文件不存在时写入 JSON，返回是否写入"""
    if path.exists():
        logger.debug("模板已存在，跳过: %s", path)
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(content, indent=4) + "\n", encoding="utf-8")
    logger.info("已生成模板: %s", path)
    return True
