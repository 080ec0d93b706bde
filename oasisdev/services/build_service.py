"""构建编排：CMake 配置 + 编译

输出目录由 BuildLayout 按变体决定，不同变体互不干扰。
configure / build 任一步非零退出即抛 BuildFailure，不重试；
外部工具的诊断输出直接透传到终端。
"""

from __future__ import annotations

import logging
import shutil
import time
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from oasisdev.core.config import DevEnvConfig
from oasisdev.core.exceptions import BuildFailure
from oasisdev.core.models import BuildLayout, Configuration, Variant
from oasisdev.services.toolchain_env import toolchain_env
from oasisdev.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    variant: Variant
    build_dir: Path
    duration: float = 0.0
    tests_built: bool = True


class BuildService:
    """构建生命周期管理"""

    def __init__(
        self,
        executor: CommandExecutor,
        config: DevEnvConfig,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.executor = executor
        self.config = config
        self.layout = BuildLayout(config.root / config.build_root)
        self._environ = environ

    def configure_cmd(self, cfg: Configuration, build_dir: Path) -> list[str]:
        definitions = {
            "CMAKE_BUILD_TYPE": cfg.variant.value,
            "CMAKE_EXPORT_COMPILE_COMMANDS": "ON",
            **self.config.cmake_definitions,
            "BUILD_TESTS": "ON" if cfg.include_tests else "OFF",
        }
        cmd = ["cmake", "-S", str(self.config.root), "-B", str(build_dir)]
        cmd += [f"-D{k}={v}" for k, v in definitions.items()]
        if self.config.cmake_generator:
            cmd += ["-G", self.config.cmake_generator]
        return cmd

    def build_cmd(self, cfg: Configuration, build_dir: Path) -> list[str]:
        return ["cmake", "--build", str(build_dir), "--parallel", str(cfg.parallelism)]

    def clean(self, variant: Variant) -> bool:
        """删除变体构建目录，目录不存在返回 False（不视为错误）"""
        build_dir = self.layout[variant]
        if not build_dir.exists():
            return False
        logger.info("清理构建目录: %s", build_dir)
        try:
            shutil.rmtree(build_dir)
        except OSError as e:
            raise BuildFailure("clean", None, output=f"无法删除 {build_dir}: {e}") from e
        return True

    def build(self, cfg: Configuration) -> BuildResult:
        build_dir = self.layout[cfg.variant]
        logger.info("构建类型: %s", cfg.variant.value)
        logger.info("构建目录: %s", build_dir)
        logger.info("并行任务: %d", cfg.parallelism)

        if cfg.clean_first:
            self.clean(cfg.variant)
        try:
            build_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BuildFailure("configure", None, output=f"无法创建 {build_dir}: {e}") from e

        env = toolchain_env(self._environ)
        start = time.monotonic()
        for step, cmd in (
            ("configure", self.configure_cmd(cfg, build_dir)),
            ("build", self.build_cmd(cfg, build_dir)),
        ):
            logger.info("[%s] %s", step, " ".join(cmd))
            r = self.executor.execute(cmd, cwd=build_dir, env=env, stream=True)
            if not r.success:
                logger.error("%s 失败 (rc=%d)", step, r.returncode)
                raise BuildFailure(step, r.returncode, output=r.output)

        duration = time.monotonic() - start
        logger.info("构建完成: %s (%.1fs)", build_dir, duration)
        return BuildResult(
            variant=cfg.variant, build_dir=build_dir,
            duration=duration, tests_built=cfg.include_tests,
        )
