"""oasisdev 命令行接口

CLI 按子命令拆分为子模块（setup / build / test / clean），每个模块注册自己的命令到 main group。
选项解析错误、未知选项和业务异常统一输出帮助 / 错误信息并以退出码 1 结束。
"""

from __future__ import annotations

import functools
import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, NoReturn

import click

from oasisdev import __version__
from oasisdev.core.config import DevEnvConfig, init_config
from oasisdev.core.exceptions import ConfigError, OasisDevError, ValidationError
from oasisdev.services.runtime import RuntimeHandle
from oasisdev.utils.logger import setup_logging
from oasisdev.utils.shell import CommandExecutor, get_executor


@dataclass
class AppContext:
    """单次调用共享的配置与执行器"""

    config: DevEnvConfig
    executor: CommandExecutor

    def runtime(self) -> RuntimeHandle:
        return RuntimeHandle(self.executor, self.config)


def _app() -> AppContext:
    """获取当前调用的 AppContext"""
    obj = click.get_current_context().find_object(AppContext)
    if obj is None:
        raise click.UsageError("AppContext 未初始化")
    return obj


def _usage_exit(ctx: click.Context, message: str) -> NoReturn:
    click.echo(ctx.get_help(), err=True)
    click.echo(f"\n错误: {message}", err=True)
    ctx.exit(1)


class StrictCommand(click.Command):
    """选项解析失败时打印完整帮助并以退出码 1 结束（click 默认为 2）"""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            _usage_exit(ctx, e.format_message())


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """将 OasisDevError 转换为错误输出 + 退出码 1"""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        ctx = click.get_current_context()
        try:
            return func(*args, **kwargs)
        except ValidationError as e:
            _usage_exit(ctx, str(e))
        except OasisDevError as e:
            click.echo(f"错误: {e}", err=True)
            output = getattr(e, "output", "")
            if output:
                click.echo(output, err=True)
            ctx.exit(1)

    return wrapper


def default_confirm(prompt: str) -> bool:
    return click.confirm(prompt, default=False)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--project-root", default=".", envvar="OASISDEV_PROJECT_ROOT",
    type=click.Path(file_okay=False), help="项目根目录",
)
@click.pass_context
def main(ctx: click.Context, project_root: str) -> None:
    """oasisdev - OASIS 开发环境装配 / 构建 / 测试 / 清理"""
    setup_logging(
        level=os.getenv("OASISDEV_LOG_LEVEL", "INFO"),
        json_output=os.getenv("OASISDEV_LOG_JSON", "") == "1",
    )
    try:
        config = init_config(project_root)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    ctx.obj = AppContext(config=config, executor=get_executor())


# 注册各子命令
from oasisdev.cli.cmd_setup import register as _reg_setup  # noqa: E402
from oasisdev.cli.cmd_build import register as _reg_build  # noqa: E402
from oasisdev.cli.cmd_test import register as _reg_test  # noqa: E402
from oasisdev.cli.cmd_clean import register as _reg_clean  # noqa: E402

_reg_setup(main)
_reg_build(main)
_reg_test(main)
_reg_clean(main)
