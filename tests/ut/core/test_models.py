"""核心数据模型测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from oasisdev.core.models import (
    AggregateResult,
    BuildLayout,
    CheckStatus,
    CleanupItem,
    CleanupScope,
    PrerequisiteReport,
    ProvisioningState,
    Target,
    TestOutcome,
    Variant,
    parse_variant,
)


class TestVariant:
    @pytest.mark.parametrize(("token", "expected"), [
        ("debug", Variant.DEBUG), ("Debug", Variant.DEBUG), ("DEBUG", Variant.DEBUG),
        ("dbg", Variant.DEBUG),
        ("release", Variant.RELEASE), ("Release", Variant.RELEASE), ("rel", Variant.RELEASE),
        ("relwithdebinfo", Variant.REL_WITH_DEB_INFO),
        ("RelWithDebInfo", Variant.REL_WITH_DEB_INFO),
        ("rel-with-deb-info", Variant.REL_WITH_DEB_INFO),
        ("minsizerel", Variant.MIN_SIZE_REL), ("MinSizeRel", Variant.MIN_SIZE_REL),
        ("min_size_rel", Variant.MIN_SIZE_REL),
        ("  release ", Variant.RELEASE),
    ])
    def test_parse_normalizes(self, token: str, expected: Variant) -> None:
        assert parse_variant(token) is expected

    @pytest.mark.parametrize("token", ["", "profile", "debugg", "rel-with"])
    def test_parse_unknown(self, token: str) -> None:
        assert parse_variant(token) is None

    def test_dir_names_are_lowercase_build_type(self) -> None:
        assert [v.dir_name for v in Variant] == [
            "debug", "release", "relwithdebinfo", "minsizerel",
        ]


class TestBuildLayout:
    def test_variants_never_share_paths(self, tmp_path: Path) -> None:
        layout = BuildLayout(tmp_path / "build")
        dirs = list(layout.all_dirs().values())
        assert len(set(dirs)) == len(Variant)
        for a in dirs:
            for b in dirs:
                if a != b:
                    assert a not in b.parents and b not in a.parents

    def test_lookup(self, tmp_path: Path) -> None:
        layout = BuildLayout(tmp_path / "build")
        assert layout[Variant.DEBUG] == tmp_path / "build" / "debug"


class TestCleanupScope:
    def test_empty_defaults_to_build_artifacts(self) -> None:
        assert CleanupScope().items == {CleanupItem.BUILD_ARTIFACTS}

    def test_explicit_selection_kept(self) -> None:
        scope = CleanupScope(frozenset({CleanupItem.CACHE_STATE}))
        assert scope.items == {CleanupItem.CACHE_STATE}

    def test_everything_ordered(self) -> None:
        assert CleanupScope.everything().ordered() == list(CleanupItem)


class TestAggregateResult:
    def test_absent_target_excluded(self) -> None:
        result = AggregateResult(outcomes=[
            TestOutcome(Target.NATIVE, ran=True, passed=True),
            TestOutcome(Target.BINDINGS, ran=False),
        ])
        assert result.passed is True
        assert result.exit_code == 0
        assert [o.target for o in result.skipped] == [Target.BINDINGS]

    def test_failure_regardless_of_absent_target(self) -> None:
        result = AggregateResult(outcomes=[
            TestOutcome(Target.NATIVE, ran=True, passed=False),
            TestOutcome(Target.BINDINGS, ran=False),
        ])
        assert result.passed is False
        assert result.exit_code == 1

    def test_nothing_ran(self) -> None:
        result = AggregateResult(outcomes=[TestOutcome(Target.BINDINGS, ran=False)])
        assert result.executed == []
        assert result.passed is True


class TestPrerequisiteReport:
    def test_warn_does_not_block(self) -> None:
        report = PrerequisiteReport()
        report.add("runtime_version", CheckStatus.WARN, "old")
        assert report.passed is True
        assert len(report.warnings) == 1

    def test_fail_blocks(self) -> None:
        report = PrerequisiteReport()
        report.add("runtime_daemon", CheckStatus.FAIL)
        assert report.passed is False
        assert report.failures[0].name == "runtime_daemon"


def test_provisioning_state_reuse() -> None:
    assert ProvisioningState(image_exists=True, container_exists=False, force=False).reuse_image
    assert not ProvisioningState(image_exists=True, container_exists=False, force=True).reuse_image
    assert not ProvisioningState(image_exists=False, container_exists=False, force=False).reuse_image
