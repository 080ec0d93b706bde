"""容器运行时句柄

镜像 / 容器身份显式建模为句柄，传入每个编排器；
“是否已存在 / 是否在运行”均在调用时向运行时重新查询，不做本地缓存。
"""

from __future__ import annotations

import logging
from pathlib import Path

from oasisdev.core.config import DevEnvConfig
from oasisdev.utils.shell import CommandExecutor, CommandResult, format_cmd

logger = logging.getLogger(__name__)


class RuntimeHandle:
    """命名镜像 / 容器的运行时操作集合"""

    def __init__(self, executor: CommandExecutor, config: DevEnvConfig) -> None:
        self.executor = executor
        self.bin = config.runtime_bin
        self.image_name = config.image_name
        self.image_tag = config.image_tag
        self.container_name = config.container_name
        self.project_root = config.root

    @property
    def image_ref(self) -> str:
        return f"{self.image_name}:{self.image_tag}"

    def _run(self, *args: str, stream: bool = False, cwd: str | Path = ".") -> CommandResult:
        cmd = [self.bin, *args]
        logger.debug("runtime: %s", format_cmd(cmd))
        return self.executor.execute(cmd, cwd=cwd, stream=stream)

    # ---- 查询 ----

    def info(self) -> CommandResult:
        return self._run("info")

    def version(self) -> CommandResult:
        return self._run("--version")

    def list_images(self) -> list[str]:
        """列出本地全部 repository:tag"""
        r = self._run("images", "--format", "{{.Repository}}:{{.Tag}}")
        if not r.success:
            return []
        return [line.strip() for line in r.stdout.splitlines() if line.strip()]

    def list_containers(self) -> list[str]:
        r = self._run("ps", "-a", "--format", "{{.Names}}")
        if not r.success:
            return []
        return [line.strip() for line in r.stdout.splitlines() if line.strip()]

    def image_exists(self) -> bool:
        return self.image_ref in self.list_images()

    def container_exists(self) -> bool:
        return self.container_name in self.list_containers()

    def project_images(self) -> list[str]:
        """所有属于本项目镜像名的 tag"""
        prefix = f"{self.image_name}:"
        return [ref for ref in self.list_images() if ref.startswith(prefix)]

    # ---- 变更 ----

    def stop_container(self) -> CommandResult:
        return self._run("stop", self.container_name)

    def remove_container(self) -> CommandResult:
        return self._run("rm", self.container_name)

    def remove_image(self, ref: str = "") -> CommandResult:
        return self._run("rmi", ref or self.image_ref)

    def build_image(
        self, dockerfile: str, build_args: dict[str, str], *, no_cache: bool = False,
    ) -> CommandResult:
        args = ["build"]
        for key, value in build_args.items():
            args += ["--build-arg", f"{key}={value}"]
        if no_cache:
            args.append("--no-cache")
        args += ["-t", self.image_ref, "-f", dockerfile, "."]
        return self._run(*args, stream=True, cwd=self.project_root)

    def run_disposable(self, *cmd: str) -> CommandResult:
        """在一次性容器（--rm）中执行命令"""
        return self._run("run", "--rm", self.image_ref, *cmd)

    def prune_builder(self) -> CommandResult:
        return self._run("builder", "prune", "-f")

    def prune_system(self) -> CommandResult:
        return self._run("system", "prune", "-f")

    # ---- compose ----

    def compose_command(self) -> list[str] | None:
        """探测 compose CLI：独立的 docker-compose 或 `docker compose` 插件"""
        if self.executor.which("docker-compose"):
            return ["docker-compose"]
        if self._run("compose", "version").success:
            return [self.bin, "compose"]
        return None

    def compose_down(self, compose_cmd: list[str]) -> CommandResult:
        return self.executor.execute([*compose_cmd, "down"], cwd=self.project_root)
