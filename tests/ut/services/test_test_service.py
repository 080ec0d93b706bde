"""TestService 单元测试"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from oasisdev.core.config import DevEnvConfig
from oasisdev.core.exceptions import TestFailure
from oasisdev.core.models import Configuration, Target, Variant
from oasisdev.services.testrun_service import CTEST_MANIFEST, TestService

BOTH = frozenset({Target.NATIVE, Target.BINDINGS})


@pytest.fixture()
def svc(executor, config) -> TestService:
    return TestService(executor, config, environ={})


@pytest.fixture()
def built(project: Path) -> Path:
    """已构建（含测试）的 debug 目录"""
    d = project / "build" / "debug"
    d.mkdir(parents=True)
    (d / CTEST_MANIFEST).write_text("")
    return d


@pytest.fixture()
def py_tests(project: Path) -> Path:
    d = project / "tests" / "python"
    d.mkdir(parents=True)
    return d


class TestTestService:
    def test_missing_build_dir_fails_fast(self, svc, executor) -> None:
        with pytest.raises(TestFailure, match="build/debug"):
            svc.run(Configuration(targets=frozenset({Target.NATIVE})))
        assert executor.calls == []

    def test_both_pass(self, svc, executor, built, py_tests) -> None:
        result = svc.run(Configuration(targets=BOTH))
        assert result.passed and len(result.executed) == 2
        ctest, pytest_call = executor.calls
        assert ctest.args == ["ctest", "--output-on-failure"]
        assert ctest.cwd == str(built)
        assert pytest_call.args == ["python", "-m", "pytest"]
        assert pytest_call.cwd == str(py_tests)
        assert pytest_call.env["PYTHONPATH"].split(":")[0] == str(built / "python")

    def test_absent_python_suite_is_excluded(self, svc, executor, built) -> None:
        result = svc.run(Configuration(targets=BOTH))
        assert result.passed
        assert [o.target for o in result.skipped] == [Target.BINDINGS]
        assert not executor.ran("python")

    def test_native_failure_fails_aggregate(self, svc, executor, built) -> None:
        executor.on("ctest", rc=8)
        result = svc.run(Configuration(targets=BOTH))
        assert not result.passed
        assert result.exit_code == 1

    def test_python_failure(self, svc, executor, built, py_tests) -> None:
        executor.on("python -m pytest", rc=1)
        result = svc.run(Configuration(targets=BOTH))
        assert not result.passed
        native = next(o for o in result.outcomes if o.target is Target.NATIVE)
        assert native.passed

    def test_build_without_tests_skips_native(self, svc, executor, project, py_tests) -> None:
        (project / "build" / "debug").mkdir(parents=True)
        result = svc.run(Configuration(targets=BOTH))
        assert [o.target for o in result.skipped] == [Target.NATIVE]
        assert not executor.ran("ctest")
        assert result.passed

    def test_cpp_only(self, svc, executor, built, py_tests) -> None:
        result = svc.run(Configuration(targets=frozenset({Target.NATIVE})))
        assert [o.target for o in result.outcomes] == [Target.NATIVE]
        assert executor.lines() == ["ctest --output-on-failure"]

    def test_verbose_and_python_coverage_args(self, svc, executor, project, py_tests) -> None:
        (project / "build" / "release").mkdir(parents=True)
        svc.run(Configuration(
            variant=Variant.RELEASE, targets=frozenset({Target.BINDINGS}),
            verbose=True, coverage=True,
        ))
        assert executor.calls[0].args == [
            "python", "-m", "pytest", "-v",
            "--cov=oasis", "--cov-report=html", "--cov-report=term",
        ]


class TestCoverage:
    def test_generated_after_native(self, svc, executor, built) -> None:
        executor.available |= {"gcov", "lcov", "genhtml"}
        result = svc.run(Configuration(targets=frozenset({Target.NATIVE}), coverage=True))
        assert result.coverage_report == str(built / "coverage_html")
        lines = executor.lines()
        assert lines[0].startswith("ctest")
        assert lines[1].startswith("lcov --capture")
        assert lines[2].startswith("lcov --remove coverage.info")
        assert lines[3].startswith("genhtml coverage_filtered.info")

    def test_missing_tools_only_warn(self, svc, executor, built, caplog) -> None:
        result = svc.run(Configuration(targets=frozenset({Target.NATIVE}), coverage=True))
        assert result.passed
        assert result.coverage_report == ""
        assert not executor.ran("lcov")
        assert "跳过 C++ 覆盖率" in caplog.text

    def test_tool_failure_does_not_affect_result(self, svc, executor, built) -> None:
        executor.available |= {"gcov", "lcov", "genhtml"}
        executor.on("lcov --capture", rc=1, stderr="no .gcda files")
        result = svc.run(Configuration(targets=frozenset({Target.NATIVE}), coverage=True))
        assert result.passed
        assert result.coverage_report == ""
        assert not executor.ran("genhtml")

    def test_not_generated_when_native_skipped(self, svc, executor, project, py_tests) -> None:
        executor.available |= {"gcov", "lcov", "genhtml"}
        (project / "build" / "debug").mkdir(parents=True)
        svc.run(Configuration(targets=BOTH, coverage=True))
        assert not executor.ran("lcov")


class TestRelativeProjectRoot:
    """项目根为 "."：各命令在不同 cwd 下运行，路径参数必须落在项目内"""

    @pytest.fixture()
    def rel_svc(self, executor, project, monkeypatch) -> TestService:
        monkeypatch.chdir(project)
        return TestService(executor, DevEnvConfig(project_root="."), environ={})

    def test_python_path_points_at_build_tree(self, rel_svc, executor, project, built, py_tests) -> None:
        rel_svc.run(Configuration(targets=frozenset({Target.BINDINGS})))
        call = executor.calls[0]
        assert call.cwd == str(py_tests.resolve())
        first = call.env["PYTHONPATH"].split(os.pathsep)[0]
        assert first == str(built.resolve() / "python")

    def test_coverage_output_under_build_dir(self, rel_svc, executor, built) -> None:
        executor.available |= {"gcov", "lcov", "genhtml"}
        result = rel_svc.run(Configuration(targets=frozenset({Target.NATIVE}), coverage=True))
        genhtml = executor.calls[-1]
        out_dir = genhtml.args[genhtml.args.index("--output-directory") + 1]
        assert out_dir == str(built.resolve() / "coverage_html")
        assert result.coverage_report == out_dir
        assert genhtml.cwd == str(built.resolve())
