"""装配后环境校验

在一次性容器中依次执行固定的冒烟检查，首个失败即抛 VerificationError。
"""

from __future__ import annotations

import logging

from oasisdev.core.config import DevEnvConfig
from oasisdev.core.exceptions import VerificationError
from oasisdev.core.models import StepResult
from oasisdev.services.runtime import RuntimeHandle

logger = logging.getLogger(__name__)


class Verifier:
    """环境冒烟检查"""

    def __init__(self, runtime: RuntimeHandle, config: DevEnvConfig) -> None:
        self.runtime = runtime
        self.checks: list[tuple[str, list[str]]] = [
            ("python", ["python3", "--version"]),
            ("cmake", ["cmake", "--version"]),
            ("sdk_artifact", ["test", "-f", config.sdk_artifact]),
        ]

    def verify(self) -> list[StepResult]:
        logger.info("校验环境...")
        passed: list[StepResult] = []
        for name, cmd in self.checks:
            r = self.runtime.run_disposable(*cmd)
            if not r.success:
                logger.error("校验失败: %s (rc=%d)", name, r.returncode)
                raise VerificationError(name, output=r.output)
            logger.info("校验通过: %s", name)
            passed.append(StepResult(name=name, ok=True, detail=r.stdout.strip()))
        return passed
