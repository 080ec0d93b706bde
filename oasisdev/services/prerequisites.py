"""主机前置条件检查

按固定顺序探测:
  1. runtime_binary   容器运行时可执行文件      缺失 → fail（短路）
  2. runtime_daemon   守护进程可达              不可达 → fail（短路）
  3. runtime_version  版本不低于最低要求        过低 / 无法识别 → warn
  4. compose          docker-compose 或 docker compose 其一可用  都没有 → fail
  5. disk_space       项目所在分区剩余空间      不足 → warn

短路时立即返回报告，后续检查不再执行，避免输出误导性的部分结果。
全部为只读查询。
"""

from __future__ import annotations

import logging
import re
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import Any

from oasisdev.core.config import DevEnvConfig
from oasisdev.core.models import CheckStatus, PrerequisiteReport
from oasisdev.services.runtime import RuntimeHandle

logger = logging.getLogger(__name__)

GIB = 1024 ** 3

_VERSION_RE = re.compile(r"(\d+)\.(\d+)")


def parse_version(text: str) -> tuple[int, int] | None:
    """从 `Docker version 24.0.7, build afdd53b` 之类的输出提取 (major, minor)"""
    m = _VERSION_RE.search(text)
    if m is None:
        return None
    return int(m.group(1)), int(m.group(2))


class PrerequisiteChecker:
    """前置条件检查器"""

    def __init__(
        self,
        runtime: RuntimeHandle,
        config: DevEnvConfig,
        disk_usage: Callable[[str], Any] = shutil.disk_usage,
    ) -> None:
        self.runtime = runtime
        self.config = config
        self._disk_usage = disk_usage

    def check(self) -> PrerequisiteReport:
        report = PrerequisiteReport()
        logger.info("检查前置条件...")

        if not self._check_binary(report):
            return report
        if not self._check_daemon(report):
            return report
        self._check_version(report)
        self._check_compose(report)
        self._check_disk(report)

        for c in report.warnings:
            logger.warning("%s: %s", c.name, c.detail)
        return report

    def _check_binary(self, report: PrerequisiteReport) -> bool:
        path = self.runtime.executor.which(self.runtime.bin)
        if path is None:
            report.add("runtime_binary", CheckStatus.FAIL,
                       f"未安装 {self.runtime.bin}，请先安装容器运行时")
            return False
        report.add("runtime_binary", CheckStatus.OK, path)
        return True

    def _check_daemon(self, report: PrerequisiteReport) -> bool:
        r = self.runtime.info()
        if not r.success:
            report.add("runtime_daemon", CheckStatus.FAIL,
                       f"{self.runtime.bin} 守护进程未运行，请先启动")
            return False
        report.add("runtime_daemon", CheckStatus.OK, "可达")
        return True

    def _check_version(self, report: PrerequisiteReport) -> None:
        required = parse_version(self.config.min_runtime_version)
        r = self.runtime.version()
        found = parse_version(r.stdout) if r.success else None
        if found is None:
            report.add("runtime_version", CheckStatus.WARN, "无法识别运行时版本")
        elif required is not None and found < required:
            report.add(
                "runtime_version", CheckStatus.WARN,
                f"检测到版本 {found[0]}.{found[1]}，建议 "
                f"{self.config.min_runtime_version} 或更高",
            )
        else:
            report.add("runtime_version", CheckStatus.OK, f"{found[0]}.{found[1]}")

    def _check_compose(self, report: PrerequisiteReport) -> None:
        compose = self.runtime.compose_command()
        if compose is None:
            report.add("compose", CheckStatus.FAIL,
                       "docker-compose 与 `docker compose` 均不可用")
            return
        report.compose_cmd = compose
        report.add("compose", CheckStatus.OK, " ".join(compose))

    def _check_disk(self, report: PrerequisiteReport) -> None:
        root = Path(self.config.project_root)
        free = self._disk_usage(str(root if root.exists() else Path.cwd())).free
        minimum = self.config.min_free_disk_gb * GIB
        free_gb = free / GIB
        if free < minimum:
            report.add(
                "disk_space", CheckStatus.WARN,
                f"剩余空间仅 {free_gb:.1f}GB，建议至少 {self.config.min_free_disk_gb}GB",
            )
        else:
            report.add("disk_space", CheckStatus.OK, f"{free_gb:.1f}GB 可用")
