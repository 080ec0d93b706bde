"""清理编排

- 非 force 模式下先展示清理范围并取得确认；拒绝即零副作用退出
- 每个清理动作独立、尽力而为：已不存在视为成功，单项失败不影响其余项
- 每个动作的结果都记录在 CleanupReport 中
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Protocol

from oasisdev.core.config import DevEnvConfig
from oasisdev.core.exceptions import CleanupPartialFailure
from oasisdev.core.models import CleanupItem, CleanupReport, CleanupScope, StepResult
from oasisdev.services.runtime import RuntimeHandle

logger = logging.getLogger(__name__)

PYTHON_ARTIFACT_FILES = ("*.pyc",)
PYTHON_ARTIFACT_DIRS = ("__pycache__", "*.egg-info")
CACHE_FILES = ("CMakeCache.txt", "*.tmp", "*.log", ".DS_Store")
CACHE_DIRS = ("CMakeFiles",)

# 不向下遍历的目录
_SKIP_DIRS = {".git", ".venv", "node_modules"}


class Confirmer(Protocol):
    """确认提供者：给出提示，返回操作者是否同意"""

    def __call__(self, prompt: str) -> bool: ...


def _walk(root: Path) -> Iterator[Path]:
    """深度优先遍历，跳过版本库 / 虚拟环境目录"""
    if not root.is_dir():
        return
    for child in sorted(root.iterdir()):
        if child.is_dir() and not child.is_symlink():
            if child.name in _SKIP_DIRS:
                continue
            yield from _walk(child)
        yield child


class CleanupService:
    """构建产物 / 运行时资源 / 缓存清理"""

    def __init__(
        self,
        runtime: RuntimeHandle,
        config: DevEnvConfig,
        confirm: Confirmer,
        compose_cmd: list[str] | None = None,
    ) -> None:
        self.runtime = runtime
        self.config = config
        self.confirm = confirm
        self._compose_cmd = compose_cmd
        self._handlers: dict[CleanupItem, list[tuple[str, Callable[[], str]]]] = {
            CleanupItem.BUILD_ARTIFACTS: [
                ("build_dir", self._remove_build_dir),
                ("python_artifacts", self._remove_python_artifacts),
            ],
            CleanupItem.RUNTIME_RESOURCES: [
                ("compose_down", self._compose_down),
                ("images", self._remove_images),
                ("system_prune", self._prune_system),
            ],
            CleanupItem.CACHE_STATE: [
                ("volumes", self._remove_volumes),
                ("cache_files", self._remove_cache_files),
            ],
        }

    def describe(self, scope: CleanupScope) -> str:
        lines = ["将清理以下 OASIS 开发文件:"]
        lines += [f"  - {item.description}" for item in scope.ordered()]
        return "\n".join(lines)

    def clean(self, scope: CleanupScope, force: bool = False) -> CleanupReport:
        if not force:
            if not self.confirm(self.describe(scope) + "\n继续?"):
                logger.info("已取消清理")
                return CleanupReport(confirmed=False)

        report = CleanupReport()
        for item in scope.ordered():
            logger.info("清理%s...", item.description)
            for name, action in self._handlers[item]:
                report.items.append(self._attempt(f"{item.value}.{name}", action))

        for failed in report.failed:
            logger.warning("清理未完成: %s: %s", failed.name, failed.detail)
        return report

    @staticmethod
    def _attempt(name: str, action: Callable[[], str]) -> StepResult:
        try:
            detail = action()
        except CleanupPartialFailure as e:
            return StepResult(name=name, ok=False, detail=e.reason)
        return StepResult(name=name, ok=True, detail=detail)

    # ---- 文件系统 ----

    @staticmethod
    def _remove_path(path: Path) -> bool:
        """删除文件或目录，不存在返回 False"""
        if not path.exists() and not path.is_symlink():
            return False
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
        except OSError as e:
            raise CleanupPartialFailure(str(path), str(e)) from e
        return True

    def _remove_matching(self, files: tuple[str, ...], dirs: tuple[str, ...]) -> str:
        removed, errors = 0, []
        try:
            candidates = list(_walk(self.config.root))
        except OSError as e:
            raise CleanupPartialFailure("files", f"无法遍历 {self.config.root}: {e}") from e
        for path in candidates:
            is_dir = path.is_dir() and not path.is_symlink()
            patterns = dirs if is_dir else files
            if not any(path.match(p) for p in patterns):
                continue
            try:
                removed += self._remove_path(path)
            except CleanupPartialFailure as e:
                errors.append(str(e))
        if errors:
            raise CleanupPartialFailure("files", "; ".join(errors))
        return f"删除 {removed} 项"

    def _remove_build_dir(self) -> str:
        path = self.config.root / self.config.build_root
        return "已删除" if self._remove_path(path) else "已不存在"

    def _remove_python_artifacts(self) -> str:
        return self._remove_matching(PYTHON_ARTIFACT_FILES, PYTHON_ARTIFACT_DIRS)

    def _remove_volumes(self) -> str:
        path = self.config.root / self.config.volumes_dir
        return "已删除" if self._remove_path(path) else "已不存在"

    def _remove_cache_files(self) -> str:
        return self._remove_matching(CACHE_FILES, CACHE_DIRS)

    # ---- 容器运行时 ----

    def _compose_down(self) -> str:
        compose = self._compose_cmd or self.runtime.compose_command()
        if compose is None:
            return "compose 不可用，跳过"
        r = self.runtime.compose_down(compose)
        if not r.success:
            raise CleanupPartialFailure("compose_down", r.output or f"rc={r.returncode}")
        return "已停止"

    def _remove_images(self) -> str:
        refs = self.runtime.project_images()
        if not refs:
            return "无项目镜像"
        errors = []
        for ref in refs:
            r = self.runtime.remove_image(ref)
            if not r.success:
                errors.append(f"{ref}: {r.output or r.returncode}")
        if errors:
            raise CleanupPartialFailure("images", "; ".join(errors))
        return f"删除 {len(refs)} 个镜像"

    def _prune_system(self) -> str:
        r = self.runtime.prune_system()
        if not r.success:
            raise CleanupPartialFailure("system_prune", r.output or f"rc={r.returncode}")
        return "已清理"
