"""命令行选项声明 + 配置解析

每个子命令的选项以 OptionSpec 列表声明（名称、类型、默认值、环境变量、校验器），
同一份声明既用于生成 click 选项，也由 ConfigResolver 一次性解析为规范化记录。

解析优先级: 显式选项 > 环境变量 > 默认值
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import click

from oasisdev.core.exceptions import ValidationError
from oasisdev.core.models import (
    CleanupItem,
    CleanupScope,
    Configuration,
    SetupOptions,
    Target,
    Variant,
    parse_variant,
)

logger = logging.getLogger(__name__)

PARALLEL_ENV_VAR = "CMAKE_BUILD_PARALLEL_LEVEL"

FLAG = "flag"
INT = "int"


def positive(value: int) -> str | None:
    return None if value > 0 else "必须为正整数"


def non_negative(value: int) -> str | None:
    return None if value >= 0 else "不能为负数"


@dataclass(frozen=True)
class OptionSpec:
    """单个选项的声明"""

    name: str
    dest: str
    kind: str = FLAG
    default: Any = None
    help: str = ""
    env: str = ""
    validator: Callable[[Any], str | None] | None = None
    metavar: str = ""

    def to_click(self) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        if self.kind == FLAG:
            return click.option(self.name, self.dest, is_flag=True, default=False, help=self.help)
        # 数值选项以字符串接收，由 ConfigResolver 统一解析和报错
        return click.option(
            self.name, self.dest, default=None, help=self.help,
            metavar=self.metavar or "N",
        )


def apply_options(schema: list[OptionSpec]) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """按声明顺序为 click 命令挂载选项"""
    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        for spec in reversed(schema):
            func = spec.to_click()(func)
        return func
    return decorator


# =========================================================================
# 各子命令选项声明
# =========================================================================

SETUP_OPTIONS = [
    OptionSpec("--force-rebuild", "force_rebuild", help="删除已有容器和镜像后重新构建"),
    OptionSpec("--no-cache", "no_cache", help="构建镜像时不使用缓存"),
    OptionSpec("--clean", "clean", help="装配前清理已有容器和构建缓存"),
    OptionSpec("--check-only", "check_only", help="只做前置检查，不装配"),
    OptionSpec("--user-uid", "user_uid", kind=INT, help="镜像内用户 UID（默认当前用户）",
               validator=non_negative, metavar="UID"),
    OptionSpec("--user-gid", "user_gid", kind=INT, help="镜像内用户 GID（默认当前用户）",
               validator=non_negative, metavar="GID"),
]

BUILD_OPTIONS = [
    OptionSpec("--clean", "clean_first", help="构建前删除该变体的构建目录"),
    OptionSpec("--no-tests", "no_tests", help="不构建测试"),
    OptionSpec("--jobs", "parallelism", kind=INT, env=PARALLEL_ENV_VAR,
               help=f"并行编译任务数（默认 ${PARALLEL_ENV_VAR} 或 CPU 核数）",
               validator=positive),
]

TEST_OPTIONS = [
    OptionSpec("--cpp-only", "cpp_only", help="只运行 C++ 测试"),
    OptionSpec("--python-only", "python_only", help="只运行 Python 测试"),
    OptionSpec("--coverage", "coverage", help="生成覆盖率报告"),
    OptionSpec("--verbose", "verbose", help="详细测试输出"),
]

CLEAN_OPTIONS = [
    OptionSpec("--build-dir", "build_dir", help="清理构建目录（默认）"),
    OptionSpec("--containers", "containers", help="清理容器和镜像"),
    OptionSpec("--cache", "cache", help="清理缓存和临时文件"),
    OptionSpec("--all", "all_items", help="清理全部"),
    OptionSpec("--force", "force", help="不询问确认"),
]


# =========================================================================
# 解析器
# =========================================================================


class ConfigResolver:
    """将位置参数 + 选项值 + 环境变量解析为规范化配置记录"""

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        cpu_count: int | None = None,
    ) -> None:
        self.environ = os.environ if environ is None else environ
        self.cpu_count = cpu_count or os.cpu_count() or 1

    # ---- 通用 ----

    def collect(self, schema: list[OptionSpec], values: Mapping[str, Any]) -> dict[str, Any]:
        """按声明解析选项值；未知 dest 视为校验失败"""
        known = {s.dest for s in schema}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValidationError(f"未知选项: {', '.join(unknown)}", details=unknown)

        result: dict[str, Any] = {}
        for spec in schema:
            raw = values.get(spec.dest)
            if spec.kind == FLAG:
                result[spec.dest] = bool(raw)
                continue
            source = spec.name
            if raw is None and spec.env and self.environ.get(spec.env):
                raw, source = self.environ[spec.env], spec.env
            if raw is None:
                result[spec.dest] = spec.default
                continue
            result[spec.dest] = self._parse_int(spec, source, raw)
        return result

    @staticmethod
    def _parse_int(spec: OptionSpec, source: str, raw: Any) -> int:
        try:
            value = int(str(raw).strip())
        except ValueError:
            raise ValidationError(
                f"{source} 的值必须为整数: {raw!r}", details=[spec.name],
            ) from None
        if spec.validator is not None:
            error = spec.validator(value)
            if error:
                raise ValidationError(f"{source} 的值{error}: {raw!r}", details=[spec.name])
        return value

    @staticmethod
    def resolve_variant(mode: str | None) -> Variant:
        if not mode:
            return Variant.DEBUG
        variant = parse_variant(mode)
        if variant is None:
            choices = ", ".join(v.dir_name for v in Variant)
            raise ValidationError(
                f"无效的构建类型: {mode}（可选: {choices}）", details=[mode],
            )
        return variant

    # ---- 各子命令 ----

    def resolve_build(self, mode: str | None, values: Mapping[str, Any]) -> Configuration:
        opts = self.collect(BUILD_OPTIONS, values)
        config = Configuration(
            variant=self.resolve_variant(mode),
            parallelism=opts["parallelism"] or self.cpu_count,
            clean_first=opts["clean_first"],
            include_tests=not opts["no_tests"],
        )
        logger.debug("build 配置: %s", config)
        return config

    def resolve_test(self, mode: str | None, values: Mapping[str, Any]) -> Configuration:
        opts = self.collect(TEST_OPTIONS, values)
        if opts["cpp_only"] and opts["python_only"]:
            raise ValidationError(
                "--cpp-only 与 --python-only 不能同时指定",
                details=["--cpp-only", "--python-only"],
            )
        targets = {Target.NATIVE, Target.BINDINGS}
        if opts["cpp_only"]:
            targets = {Target.NATIVE}
        elif opts["python_only"]:
            targets = {Target.BINDINGS}
        return Configuration(
            variant=self.resolve_variant(mode),
            parallelism=self.cpu_count,
            targets=frozenset(targets),
            coverage=opts["coverage"],
            verbose=opts["verbose"],
        )

    def resolve_setup(self, values: Mapping[str, Any]) -> SetupOptions:
        opts = self.collect(SETUP_OPTIONS, values)
        return SetupOptions(**opts)

    def resolve_clean(self, values: Mapping[str, Any]) -> tuple[CleanupScope, bool]:
        opts = self.collect(CLEAN_OPTIONS, values)
        if opts["all_items"]:
            return CleanupScope.everything(), opts["force"]
        selected = {
            item for item, chosen in (
                (CleanupItem.BUILD_ARTIFACTS, opts["build_dir"]),
                (CleanupItem.RUNTIME_RESOURCES, opts["containers"]),
                (CleanupItem.CACHE_STATE, opts["cache"]),
            ) if chosen
        }
        return CleanupScope(frozenset(selected)), opts["force"]
