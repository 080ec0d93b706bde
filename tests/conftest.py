"""测试共享 fixture：记录型命令执行器 + 隔离的项目配置

RecordingExecutor 实现 CommandExecutor 协议:
  - 记录每次调用（参数、cwd、env、是否透传）
  - 按命令前缀返回预设结果，未命中的命令默认成功
  - which() 只认 available 集合中的工具
测试因此无需真实的 docker / cmake / ctest。
"""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass
from pathlib import Path

import pytest

from oasisdev.core.config import DevEnvConfig
from oasisdev.services.runtime import RuntimeHandle
from oasisdev.utils.shell import CommandResult

DEFAULT_TOOLS = {"docker", "docker-compose", "cmake", "ctest"}


@dataclass
class Call:
    args: list[str]
    cwd: str
    env: dict[str, str] | None
    stream: bool

    @property
    def line(self) -> str:
        return " ".join(self.args)


class RecordingExecutor:
    def __init__(self, available: set[str] | None = None) -> None:
        self.calls: list[Call] = []
        self.available = set(DEFAULT_TOOLS if available is None else available)
        self._responses: list[tuple[tuple[str, ...], CommandResult]] = []

    def on(self, cmd: str, rc: int = 0, stdout: str = "", stderr: str = "") -> RecordingExecutor:
        """为以 cmd 开头的命令预设结果（后注册的优先）"""
        self._responses.append(
            (tuple(shlex.split(cmd)), CommandResult(returncode=rc, stdout=stdout, stderr=stderr)),
        )
        return self

    def execute(self, cmd, *, cwd=".", env=None, timeout=None, stream=False) -> CommandResult:
        args = shlex.split(cmd) if isinstance(cmd, str) else [str(a) for a in cmd]
        self.calls.append(Call(args=args, cwd=str(cwd), env=env, stream=stream))
        for prefix, result in reversed(self._responses):
            if tuple(args[:len(prefix)]) == prefix:
                return result
        return CommandResult(returncode=0)

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}" if name in self.available else None

    def lines(self) -> list[str]:
        return [c.line for c in self.calls]

    def ran(self, prefix: str) -> bool:
        return any(line.startswith(prefix) for line in self.lines())


@pytest.fixture()
def executor() -> RecordingExecutor:
    """运行时健康、已安装 compose 的默认主机"""
    return RecordingExecutor().on("docker --version", stdout="Docker version 24.0.7, build afdd53b")


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    root = tmp_path / "oasis"
    root.mkdir()
    return root


@pytest.fixture()
def config(project: Path) -> DevEnvConfig:
    return DevEnvConfig(project_root=str(project))


@pytest.fixture()
def runtime(executor: RecordingExecutor, config: DevEnvConfig) -> RuntimeHandle:
    return RuntimeHandle(executor, config)


@pytest.fixture(autouse=True)
def _restore_logging():
    """CLI 入口会重配根日志器，测试结束后恢复原状"""
    root = logging.getLogger()
    saved_level, saved_handlers = root.level, root.handlers[:]
    yield
    for handler in root.handlers[:]:
        if handler not in saved_handlers:
            root.removeHandler(handler)
    for handler in saved_handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(saved_level)
