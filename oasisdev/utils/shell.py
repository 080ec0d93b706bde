"""Shell 命令执行工具：统一子进程调用

通过 CommandExecutor 协议抽象子进程执行，方便测试替换和跨平台适配。
所有外部程序（容器运行时、CMake、CTest、pytest、lcov）都经由此处调用。
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from oasisdev.core.exceptions import ExecutionError

logger = logging.getLogger(__name__)

# 命令不存在时的返回码（与 POSIX shell 一致）
RC_NOT_FOUND = 127


# =========================================================================
# 命令执行结果
# =========================================================================

@dataclass
class CommandResult:
    """命令执行结果（与 subprocess 解耦）"""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    streamed: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """合并后的输出，供错误信息引用"""
        return "\n".join(s for s in (self.stdout.strip(), self.stderr.strip()) if s)


def format_cmd(cmd: str | list[str]) -> str:
    return cmd if isinstance(cmd, str) else " ".join(shlex.quote(c) for c in cmd)


# =========================================================================
# 命令执行器协议
# =========================================================================

class CommandExecutor(Protocol):
    """命令执行器协议：抽象子进程调用

    实现此协议即可替换底层执行方式。
    测试时可注入 RecordingExecutor，无需 patch subprocess。
    """

    def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str | Path = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
        stream: bool = False,
    ) -> CommandResult:
        """执行命令并返回结果；stream=True 时输出直接透传到终端"""
        ...

    def which(self, name: str) -> str | None:
        """查找可执行文件路径，不存在返回 None"""
        ...


# =========================================================================
# 默认实现: 本地执行器
# =========================================================================

class LocalExecutor:
    """本地命令执行器（默认实现）"""

    def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str | Path = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
        stream: bool = False,
    ) -> CommandResult:
        args = shlex.split(cmd) if isinstance(cmd, str) else cmd
        logger.debug("exec: %s (cwd=%s)", format_cmd(args), cwd)
        try:
            if stream:
                r = subprocess.run(
                    args, cwd=str(cwd), env=env, check=False, timeout=timeout,
                )
                return CommandResult(returncode=r.returncode, streamed=True)
            r = subprocess.run(
                args, capture_output=True, text=True,
                cwd=str(cwd), env=env, check=False, timeout=timeout,
            )
        except FileNotFoundError as e:
            return CommandResult(returncode=RC_NOT_FOUND, stderr=str(e))
        return CommandResult(
            returncode=r.returncode,
            stdout=r.stdout,
            stderr=r.stderr,
        )

    def which(self, name: str) -> str | None:
        return shutil.which(name)


# =========================================================================
# 全局默认执行器（可替换）
# =========================================================================

_default_executor: CommandExecutor = LocalExecutor()


def get_executor() -> CommandExecutor:
    """获取全局默认命令执行器"""
    return _default_executor


def set_executor(executor: CommandExecutor) -> None:
    """替换全局默认命令执行器（用于测试）"""
    global _default_executor  # noqa: PLW0603
    _default_executor = executor


# =========================================================================
# 便捷函数
# =========================================================================

def run_checked(
    executor: CommandExecutor,
    cmd: str | list[str], *,
    cwd: str | Path = ".",
    env: dict[str, str] | None = None,
    label: str = "cmd",
    stream: bool = False,
) -> CommandResult:
    """执行命令，失败抛 ExecutionError

    Args:
        executor: 命令执行器
        cmd: 命令字符串或参数列表
        cwd: 工作目录
        env: 环境变量（不传则继承当前进程）
        label: 日志标签
        stream: 是否将输出直接透传到终端
    """
    logger.info("  %s: %s (cwd=%s)", label, format_cmd(cmd), cwd)
    r = executor.execute(cmd, cwd=cwd, env=env, stream=stream)
    if not r.success:
        raise ExecutionError(f"{label}失败 (rc={r.returncode}): {r.output[:500]}")
    return r
