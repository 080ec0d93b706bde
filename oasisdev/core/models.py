"""核心数据模型

所有记录均为单次调用内的瞬态对象，由创建它的编排器持有。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

# =========================================================================
# 构建变体
# =========================================================================


class Variant(str, Enum):
    """构建变体，值为 CMAKE_BUILD_TYPE"""

    DEBUG = "Debug"
    RELEASE = "Release"
    REL_WITH_DEB_INFO = "RelWithDebInfo"
    MIN_SIZE_REL = "MinSizeRel"

    @property
    def dir_name(self) -> str:
        """小写名：构建输出子目录（build/<dir_name>），也用作命令行与 CMake 预设中的名称"""
        return self.value.lower()


# 别名 -> 变体；查找前先转小写
_VARIANT_ALIASES: dict[str, Variant] = {
    "debug": Variant.DEBUG,
    "dbg": Variant.DEBUG,
    "release": Variant.RELEASE,
    "rel": Variant.RELEASE,
    "relwithdebinfo": Variant.REL_WITH_DEB_INFO,
    "rel-with-deb-info": Variant.REL_WITH_DEB_INFO,
    "rel_with_deb_info": Variant.REL_WITH_DEB_INFO,
    "minsizerel": Variant.MIN_SIZE_REL,
    "min-size-rel": Variant.MIN_SIZE_REL,
    "min_size_rel": Variant.MIN_SIZE_REL,
}


def parse_variant(token: str) -> Variant | None:
    """大小写无关地解析变体名，无法识别返回 None"""
    return _VARIANT_ALIASES.get(token.strip().lower())


class Target(str, Enum):
    """测试目标"""

    NATIVE = "native"
    BINDINGS = "bindings"

    @property
    def label(self) -> str:
        return "C++" if self is Target.NATIVE else "Python"


# =========================================================================
# 规范化配置
# =========================================================================


@dataclass(frozen=True)
class Configuration:
    """命令行解析后的规范化配置"""

    variant: Variant = Variant.DEBUG
    parallelism: int = 1
    clean_first: bool = False
    include_tests: bool = True
    targets: frozenset[Target] = frozenset({Target.NATIVE, Target.BINDINGS})
    force: bool = False
    coverage: bool = False
    verbose: bool = False


@dataclass(frozen=True)
class SetupOptions:
    """setup 命令选项"""

    force_rebuild: bool = False
    no_cache: bool = False
    clean: bool = False
    check_only: bool = False
    user_uid: int | None = None
    user_gid: int | None = None


class CleanupItem(str, Enum):
    BUILD_ARTIFACTS = "build_artifacts"
    RUNTIME_RESOURCES = "runtime_resources"
    CACHE_STATE = "cache_state"

    @property
    def description(self) -> str:
        return {
            CleanupItem.BUILD_ARTIFACTS: "构建目录与产物",
            CleanupItem.RUNTIME_RESOURCES: "容器与镜像",
            CleanupItem.CACHE_STATE: "缓存与临时文件",
        }[self]


@dataclass(frozen=True)
class CleanupScope:
    """清理范围；未选择任何项时只清理构建产物，绝不默认销毁运行时资源"""

    items: frozenset[CleanupItem] = frozenset()

    def __post_init__(self) -> None:
        if not self.items:
            object.__setattr__(self, "items", frozenset({CleanupItem.BUILD_ARTIFACTS}))

    @classmethod
    def everything(cls) -> CleanupScope:
        return cls(frozenset(CleanupItem))

    def ordered(self) -> list[CleanupItem]:
        return [i for i in CleanupItem if i in self.items]


# =========================================================================
# 前置检查
# =========================================================================


class CheckStatus(str, Enum):
    OK = "ok"
    WARN = "warn"
    FAIL = "fail"


@dataclass
class CheckResult:
    name: str
    status: CheckStatus
    detail: str = ""


@dataclass
class PrerequisiteReport:
    """有序的检查结果；任一 fail 阻断装配，warn 不阻断"""

    checks: list[CheckResult] = field(default_factory=list)
    compose_cmd: list[str] = field(default_factory=list)

    def add(self, name: str, status: CheckStatus, detail: str = "") -> CheckResult:
        result = CheckResult(name=name, status=status, detail=detail)
        self.checks.append(result)
        return result

    @property
    def failures(self) -> list[CheckResult]:
        return [c for c in self.checks if c.status is CheckStatus.FAIL]

    @property
    def warnings(self) -> list[CheckResult]:
        return [c for c in self.checks if c.status is CheckStatus.WARN]

    @property
    def passed(self) -> bool:
        return not self.failures


# =========================================================================
# 装配状态 / 构建布局
# =========================================================================


@dataclass(frozen=True)
class ProvisioningState:
    """每次装配开始时从容器运行时重新查询，不跨调用缓存"""

    image_exists: bool
    container_exists: bool
    force: bool

    @property
    def reuse_image(self) -> bool:
        return self.image_exists and not self.force


@dataclass(frozen=True)
class BuildLayout:
    """变体 -> 独立输出目录，不同变体的输出路径互不重叠"""

    root: Path

    def __getitem__(self, variant: Variant) -> Path:
        return self.root / variant.dir_name

    def all_dirs(self) -> dict[Variant, Path]:
        return {v: self[v] for v in Variant}


# =========================================================================
# 测试结果
# =========================================================================


@dataclass
class TestOutcome:
    __test__ = False

    target: Target
    ran: bool
    passed: bool = False
    detail: str = ""


@dataclass
class AggregateResult:
    """所有已执行目标的 passed 取与；未执行的目标不计入"""

    outcomes: list[TestOutcome] = field(default_factory=list)
    coverage_report: str = ""

    @property
    def executed(self) -> list[TestOutcome]:
        return [o for o in self.outcomes if o.ran]

    @property
    def skipped(self) -> list[TestOutcome]:
        return [o for o in self.outcomes if not o.ran]

    @property
    def passed(self) -> bool:
        return all(o.passed for o in self.executed)

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1


# =========================================================================
# 步骤结果
# =========================================================================


@dataclass
class StepResult:
    """单个步骤（清理项 / 校验项）的结果"""

    name: str
    ok: bool
    detail: str = ""


@dataclass
class CleanupReport:
    confirmed: bool = True
    items: list[StepResult] = field(default_factory=list)

    @property
    def failed(self) -> list[StepResult]:
        return [i for i in self.items if not i.ok]

    @property
    def success(self) -> bool:
        return not self.failed
