"""构建 / 测试子进程环境变量

- CC / CXX: 编译器选择，未设置时默认 gcc / g++
- SPICE_ROOT: SDK 根目录，设置时派生 CMAKE_PREFIX_PATH / PKG_CONFIG_PATH / LD_LIBRARY_PATH
- PYTHONPATH: 绑定模块搜索路径，可前置额外目录
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

DEFAULT_COMPILERS = {"CC": "gcc", "CXX": "g++"}
SDK_ROOT_VAR = "SPICE_ROOT"


def prepend_path(environ: Mapping[str, str], name: str, entry: str) -> str:
    current = environ.get(name, "")
    parts = [p for p in current.split(os.pathsep) if p]
    if entry in parts:
        return current
    return os.pathsep.join([entry, *parts])


def toolchain_env(
    base: Mapping[str, str] | None = None,
    *,
    python_paths: list[Path] | None = None,
) -> dict[str, str]:
    """基于当前环境生成子进程环境"""
    env = dict(os.environ if base is None else base)
    for name, default in DEFAULT_COMPILERS.items():
        env.setdefault(name, default)

    sdk_root = env.get(SDK_ROOT_VAR)
    if sdk_root:
        sdk = Path(sdk_root)
        env["CMAKE_PREFIX_PATH"] = prepend_path(env, "CMAKE_PREFIX_PATH", str(sdk))
        env["PKG_CONFIG_PATH"] = prepend_path(
            env, "PKG_CONFIG_PATH", str(sdk / "lib" / "pkgconfig"),
        )
        env["LD_LIBRARY_PATH"] = prepend_path(env, "LD_LIBRARY_PATH", str(sdk / "lib"))

    for p in reversed(python_paths or []):
        env["PYTHONPATH"] = prepend_path(env, "PYTHONPATH", str(p))
    return env
