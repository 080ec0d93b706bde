"""环境装配

步骤（任一步致命失败即停止，已完成的幂等步骤不回滚）:
  1. force / clean: 停止并删除命名容器；force 时再删除命名镜像（“已不存在”视为成功）
  2. 创建缓存 / 卷目录（已存在则不动）
  3. 构建镜像（非零退出 → ProvisionError，不进入校验）
  4. 生成默认配置模板（已存在则不覆盖）
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from oasisdev.core.config import DevEnvConfig
from oasisdev.core.exceptions import ProvisionError
from oasisdev.core.models import ProvisioningState, SetupOptions
from oasisdev.services.runtime import RuntimeHandle
from oasisdev.services.templates import (
    CMAKE_PRESETS_FILE,
    VSCODE_SETTINGS,
    VSCODE_SETTINGS_FILE,
    cmake_presets,
    write_if_absent,
)

logger = logging.getLogger(__name__)


@dataclass
class ProvisionResult:
    state: ProvisioningState
    removed: list[str] = field(default_factory=list)
    created_dirs: list[Path] = field(default_factory=list)
    created_templates: list[Path] = field(default_factory=list)


class Provisioner:
    """镜像与目录装配器"""

    def __init__(self, runtime: RuntimeHandle, config: DevEnvConfig) -> None:
        self.runtime = runtime
        self.config = config

    def query_state(self, force: bool) -> ProvisioningState:
        """向运行时查询当前镜像 / 容器状态"""
        return ProvisioningState(
            image_exists=self.runtime.image_exists(),
            container_exists=self.runtime.container_exists(),
            force=force,
        )

    def provision(
        self, options: SetupOptions, *, force: bool = False, no_cache: bool = False,
    ) -> ProvisionResult:
        state = self.query_state(force)
        result = ProvisionResult(state=state)

        if force or options.clean:
            result.removed = self._teardown(state, remove_image=force)
        result.created_dirs = self.create_directories()
        self._build_image(options, no_cache=no_cache)
        result.created_templates = self.write_templates()
        return result

    # ---- 步骤 1 ----

    def _teardown(self, state: ProvisioningState, *, remove_image: bool) -> list[str]:
        removed: list[str] = []
        logger.info("清理已有容器和镜像...")
        if state.container_exists:
            r = self.runtime.stop_container()
            if not r.success:
                logger.warning("停止容器 %s 失败: %s", self.runtime.container_name, r.output)
            r = self.runtime.remove_container()
            if r.success:
                removed.append(self.runtime.container_name)
            else:
                logger.warning("删除容器 %s 失败: %s", self.runtime.container_name, r.output)
        if remove_image and state.image_exists:
            r = self.runtime.remove_image()
            if r.success:
                removed.append(self.runtime.image_ref)
            else:
                logger.warning("删除镜像 %s 失败: %s", self.runtime.image_ref, r.output)
        r = self.runtime.prune_builder()
        if not r.success:
            logger.warning("清理镜像构建缓存失败: %s", r.output)
        return removed

    # ---- 步骤 2 ----

    def create_directories(self) -> list[Path]:
        root = self.config.root
        wanted = [root / self.config.volumes_dir / n for n in self.config.volume_names]
        wanted.append(root / self.config.config_dir)
        created = []
        for d in wanted:
            if d.is_dir():
                continue
            try:
                d.mkdir(parents=True)
            except OSError as e:
                raise ProvisionError("directories", f"无法创建目录 {d}: {e}") from e
            created.append(d)
        logger.info("目录就绪 (新建 %d 个)", len(created))
        return created

    # ---- 步骤 3 ----

    def build_args(self, options: SetupOptions) -> dict[str, str]:
        """镜像构建参数：文件属主映射所需的 UID/GID"""
        uid, gid = options.user_uid, options.user_gid
        if hasattr(os, "getuid"):
            uid = os.getuid() if uid is None else uid
            gid = os.getgid() if gid is None else gid
        args: dict[str, str] = {}
        if uid is not None:
            args["USER_UID"] = str(uid)
        if gid is not None:
            args["USER_GID"] = str(gid)
        return args

    def _build_image(self, options: SetupOptions, *, no_cache: bool) -> None:
        logger.info("构建镜像 %s（可能需要数分钟）...", self.runtime.image_ref)
        r = self.runtime.build_image(
            self.config.dockerfile, self.build_args(options), no_cache=no_cache,
        )
        if not r.success:
            raise ProvisionError(
                "image", f"镜像构建失败 (rc={r.returncode})", output=r.output,
            )
        logger.info("镜像构建成功: %s", self.runtime.image_ref)

    # ---- 步骤 4 ----

    def write_templates(self) -> list[Path]:
        config_dir = self.config.root / self.config.config_dir
        templates = {
            config_dir / VSCODE_SETTINGS_FILE: VSCODE_SETTINGS,
            config_dir / CMAKE_PRESETS_FILE: cmake_presets(
                self.config.cmake_generator, self.config.build_root,
            ),
        }
        return [path for path, content in templates.items() if write_if_absent(path, content)]
