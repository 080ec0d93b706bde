"""CLI clean：清理构建产物 / 容器镜像 / 缓存"""

from __future__ import annotations

from typing import Any

import click

from oasisdev.cli import StrictCommand, _app, default_confirm, handle_errors
from oasisdev.core.models import CleanupItem
from oasisdev.core.options import CLEAN_OPTIONS, ConfigResolver, apply_options
from oasisdev.services.cleanup_service import CleanupService


def register(group: click.Group) -> None:
    group.add_command(clean)


@click.command(name="clean", cls=StrictCommand)
@apply_options(CLEAN_OPTIONS)
@handle_errors
def clean(**values: Any) -> None:
    """清理开发文件（不带选项时只清理构建目录）"""
    scope, force = ConfigResolver().resolve_clean(values)
    app = _app()
    svc = CleanupService(app.runtime(), app.config, confirm=default_confirm)
    report = svc.clean(scope, force=force)
    if not report.confirmed:
        click.echo("已取消清理")
        return

    for item in report.items:
        mark = "OK" if item.ok else "FAIL"
        click.echo(f"  [{mark:4s}] {item.name:36s} {item.detail}")
    if report.success:
        click.echo("清理完成!")
    else:
        click.echo(f"清理部分完成: {len(report.failed)} 项失败", err=True)
    if CleanupItem.RUNTIME_RESOURCES in scope.items:
        click.echo("如需重建开发环境，执行: oasisdev setup")
