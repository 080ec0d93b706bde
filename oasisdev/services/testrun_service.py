"""测试编排：C++ (CTest) + Python (pytest) + 可选覆盖率

汇总规则:
  - 目标的前置产物缺失（无 CTest 清单 / 无 Python 测试目录）→ ran=False + 警告，不算失败
  - 已执行目标全部通过 → 通过；任一已执行目标失败 → 失败
  - 覆盖率只在 C++ 测试执行后生成；工具缺失或生成失败只告警，不影响结果
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

from oasisdev.core.config import DevEnvConfig
from oasisdev.core.exceptions import ExecutionError, TestFailure
from oasisdev.core.models import (
    AggregateResult,
    BuildLayout,
    Configuration,
    Target,
    TestOutcome,
)
from oasisdev.services.toolchain_env import toolchain_env
from oasisdev.utils.shell import CommandExecutor, run_checked

logger = logging.getLogger(__name__)

CTEST_MANIFEST = "CTestTestfile.cmake"
COVERAGE_TOOLS = ("gcov", "lcov", "genhtml")
COVERAGE_EXCLUDES = ("/usr/*", "*/third_party/*", "*/tests/*")


class TestService:
    """测试运行与结果汇总"""

    __test__ = False

    def __init__(
        self,
        executor: CommandExecutor,
        config: DevEnvConfig,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.executor = executor
        self.config = config
        self.layout = BuildLayout(config.root / config.build_root)
        self._environ = environ

    def run(self, cfg: Configuration) -> AggregateResult:
        build_dir = self.layout[cfg.variant]
        if not build_dir.is_dir():
            raise TestFailure(f"构建目录 {build_dir} 不存在，请先执行 build")

        result = AggregateResult()
        # 固定顺序：先 C++ 再 Python
        for target in (Target.NATIVE, Target.BINDINGS):
            if target not in cfg.targets:
                continue
            if target is Target.NATIVE:
                outcome = self._run_native(cfg, build_dir)
            else:
                outcome = self._run_bindings(cfg, build_dir)
            result.outcomes.append(outcome)

        native_ran = any(o.ran for o in result.outcomes if o.target is Target.NATIVE)
        if cfg.coverage and native_ran:
            result.coverage_report = self.generate_coverage(build_dir)
        return result

    # ---- C++ ----

    def _run_native(self, cfg: Configuration, build_dir: Path) -> TestOutcome:
        if not (build_dir / CTEST_MANIFEST).exists():
            logger.warning("%s 下没有 CTest 测试（构建时可能使用了 --no-tests），跳过 C++ 测试",
                           build_dir)
            return TestOutcome(Target.NATIVE, ran=False, detail="未构建测试")

        logger.info("运行 C++ 测试...")
        cmd = ["ctest", "--output-on-failure"]
        if cfg.verbose:
            cmd.insert(1, "--verbose")
        r = self.executor.execute(
            cmd, cwd=build_dir, env=toolchain_env(self._environ), stream=True,
        )
        if r.success:
            logger.info("C++ 测试通过")
        else:
            logger.error("C++ 测试失败 (ctest rc=%d)", r.returncode)
        return TestOutcome(Target.NATIVE, ran=True, passed=r.success,
                           detail=f"ctest rc={r.returncode}")

    # ---- Python ----

    def _run_bindings(self, cfg: Configuration, build_dir: Path) -> TestOutcome:
        tests_dir = self.config.root / self.config.python_tests_dir
        if not tests_dir.is_dir():
            logger.warning("未找到 Python 测试目录 %s，跳过 Python 测试", tests_dir)
            return TestOutcome(Target.BINDINGS, ran=False, detail="无测试目录")

        logger.info("运行 Python 测试...")
        cmd = ["python", "-m", "pytest"]
        if cfg.verbose:
            cmd.append("-v")
        if cfg.coverage:
            cmd += [
                f"--cov={self.config.coverage_package}",
                "--cov-report=html", "--cov-report=term",
            ]
        env = toolchain_env(self._environ, python_paths=[build_dir / "python"])
        r = self.executor.execute(cmd, cwd=tests_dir, env=env, stream=True)
        if r.success:
            logger.info("Python 测试通过")
        else:
            logger.error("Python 测试失败 (pytest rc=%d)", r.returncode)
        return TestOutcome(Target.BINDINGS, ran=True, passed=r.success,
                           detail=f"pytest rc={r.returncode}")

    # ---- 覆盖率 ----

    def generate_coverage(self, build_dir: Path) -> str:
        """生成 C++ 覆盖率 HTML 报告，返回报告目录；无法生成返回空串"""
        missing = [t for t in COVERAGE_TOOLS if self.executor.which(t) is None]
        if missing:
            logger.warning("%s 不可用，跳过 C++ 覆盖率报告", "/".join(missing))
            return ""

        logger.info("生成 C++ 覆盖率报告...")
        out_dir = build_dir / "coverage_html"
        steps = [
            ("lcov-capture", ["lcov", "--capture", "--directory", ".",
                              "--output-file", "coverage.info"]),
            ("lcov-filter", ["lcov", "--remove", "coverage.info", *COVERAGE_EXCLUDES,
                             "--output-file", "coverage_filtered.info"]),
            ("genhtml", ["genhtml", "coverage_filtered.info",
                         "--output-directory", str(out_dir)]),
        ]
        try:
            for label, cmd in steps:
                run_checked(self.executor, cmd, cwd=build_dir, label=label)
        except ExecutionError as e:
            logger.warning("覆盖率报告生成失败: %s", e)
            return ""
        logger.info("C++ 覆盖率报告: %s", out_dir)
        return str(out_dir)
