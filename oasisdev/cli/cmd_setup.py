"""CLI setup：前置检查 → 装配 → 校验"""

from __future__ import annotations

from typing import Any

import click

from oasisdev.cli import StrictCommand, _app, handle_errors
from oasisdev.core.exceptions import PrerequisiteFailure
from oasisdev.core.models import CheckStatus, PrerequisiteReport
from oasisdev.core.options import SETUP_OPTIONS, ConfigResolver, apply_options
from oasisdev.services.prerequisites import PrerequisiteChecker
from oasisdev.services.provisioner import Provisioner
from oasisdev.services.verifier import Verifier

_MARKS = {CheckStatus.OK: "OK", CheckStatus.WARN: "WARN", CheckStatus.FAIL: "FAIL"}


def register(group: click.Group) -> None:
    group.add_command(setup)


def echo_report(report: PrerequisiteReport) -> None:
    click.echo("前置检查:")
    for c in report.checks:
        click.echo(f"  [{_MARKS[c.status]:4s}] {c.name:16s} {c.detail}")


@click.command(name="setup", cls=StrictCommand)
@apply_options(SETUP_OPTIONS)
@handle_errors
def setup(**values: Any) -> None:
    """检查前置条件并装配开发环境镜像"""
    options = ConfigResolver().resolve_setup(values)
    app = _app()
    runtime = app.runtime()

    report = PrerequisiteChecker(runtime, app.config).check()
    echo_report(report)
    if not report.passed:
        raise PrerequisiteFailure(report)
    if options.check_only:
        click.echo("前置检查通过")
        return

    provisioner = Provisioner(runtime, app.config)
    result = provisioner.provision(
        options, force=options.force_rebuild, no_cache=options.no_cache,
    )
    checks = Verifier(runtime, app.config).verify()

    for name in result.removed:
        click.echo(f"已删除: {name}")
    if result.state.reuse_image:
        click.echo(f"镜像: {runtime.image_ref}（基于已有镜像层增量构建）")
    else:
        click.echo(f"镜像: {runtime.image_ref}（全新构建）")
    for path in result.created_templates:
        click.echo(f"已生成模板: {path}")
    click.echo(f"环境校验通过: {', '.join(c.name for c in checks)}")
    click.echo(f"开发环境装配完成: {runtime.image_ref}")
    click.echo("")
    click.echo("后续步骤:")
    compose = " ".join(report.compose_cmd or []) or "docker compose"
    click.echo(f"  1. {compose} up -d")
    click.echo(f"  2. {compose} exec {runtime.container_name} bash")
    click.echo(f"  3. 将 {app.config.config_dir}/vscode-settings.json 复制到 .vscode/settings.json")
