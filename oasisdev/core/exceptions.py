"""统一异常体系

所有业务异常继承 OasisDevError。
CLI 层据此输出友好提示并统一以退出码 1 结束。
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from oasisdev.core.models import PrerequisiteReport


class OasisDevError(Exception):
    """基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(OasisDevError):
    """项目配置文件缺失字段或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(OasisDevError):
    """命令行输入校验失败（未执行任何外部命令）"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class ExecutionError(OasisDevError):
    """外部命令返回非零"""

    code = "EXECUTION_ERROR"


class PrerequisiteFailure(OasisDevError):
    """主机前置条件不满足，阻断环境装配"""

    code = "PREREQUISITE_FAILURE"

    def __init__(self, report: PrerequisiteReport) -> None:
        names = ", ".join(c.name for c in report.failures)
        super().__init__(f"前置检查未通过: {names}")
        self.report = report


class ProvisionError(OasisDevError):
    """镜像构建等装配步骤失败"""

    code = "PROVISION_ERROR"

    def __init__(self, step: str, message: str, output: str = "") -> None:
        super().__init__(f"[{step}] {message}")
        self.step = step
        self.output = output


class VerificationError(OasisDevError):
    """装配后冒烟检查失败"""

    code = "VERIFICATION_ERROR"

    def __init__(self, check: str, output: str = "") -> None:
        super().__init__(f"环境校验失败: {check}")
        self.check = check
        self.output = output


class BuildFailure(OasisDevError):
    """CMake 配置或编译失败"""

    code = "BUILD_FAILURE"

    def __init__(self, step: str, returncode: int | None, output: str = "") -> None:
        if returncode is None:
            super().__init__(f"{step} 失败: {output}")
        else:
            super().__init__(f"{step} 失败 (rc={returncode})")
        self.step = step
        self.returncode = returncode
        self.output = output


class TestFailure(OasisDevError):
    """测试无法开始（如构建目录缺失）"""

    __test__ = False  # 防止 pytest 将其当作测试类收集
    code = "TEST_FAILURE"


class CleanupPartialFailure(OasisDevError):
    """单个清理项失败，其余清理项继续执行"""

    code = "CLEANUP_PARTIAL"

    def __init__(self, item: str, reason: str) -> None:
        super().__init__(f"{item}: {reason}")
        self.item = item
        self.reason = reason
