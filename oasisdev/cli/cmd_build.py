"""CLI build：按变体配置并编译"""

from __future__ import annotations

from typing import Any

import click

from oasisdev.cli import StrictCommand, _app, handle_errors
from oasisdev.core.options import BUILD_OPTIONS, ConfigResolver, apply_options
from oasisdev.services.build_service import BuildService


def register(group: click.Group) -> None:
    group.add_command(build)


@click.command(name="build", cls=StrictCommand)
@click.argument("variant", required=False)
@apply_options(BUILD_OPTIONS)
@handle_errors
def build(variant: str | None, **values: Any) -> None:
    """构建项目（VARIANT: debug | release | relwithdebinfo | minsizerel，默认 debug）"""
    config = ConfigResolver().resolve_build(variant, values)
    app = _app()
    result = BuildService(app.executor, app.config).build(config)
    click.echo(f"构建成功: {result.variant.value} ({result.duration:.1f}s)")
    click.echo(f"产物目录: {result.build_dir}")
    if result.tests_built:
        click.echo(f"测试已构建，执行 `oasisdev test {result.variant.dir_name}` 运行测试")
