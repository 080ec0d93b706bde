"""oasisdev 日志配置

终端输出沿用原 setup/build/test/clean 脚本的标签风格：
级别标签之外，按日志器名称附加阶段标签（[SETUP]/[BUILD]/[TEST]/[CLEAN]），
同一终端里交错输出时也能分辨出自哪个阶段。CI 环境可切换为结构化 JSON。
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

CONSOLE_FORMAT = "%(asctime)s [%(levelname)-7s] %(stage_tag)s%(name)s: %(message)s"

# 日志器名称前缀 -> 阶段标签，按最长前缀匹配
STAGE_TAGS: dict[str, str] = {
    "oasisdev.services.prerequisites": "SETUP",
    "oasisdev.services.provisioner": "SETUP",
    "oasisdev.services.verifier": "SETUP",
    "oasisdev.cli.cmd_setup": "SETUP",
    "oasisdev.services.build_service": "BUILD",
    "oasisdev.cli.cmd_build": "BUILD",
    "oasisdev.services.testrun_service": "TEST",
    "oasisdev.cli.cmd_test": "TEST",
    "oasisdev.services.cleanup_service": "CLEAN",
    "oasisdev.cli.cmd_clean": "CLEAN",
}


def stage_of(logger_name: str) -> str:
    """日志器名称对应的阶段标签，无对应阶段返回空串"""
    best = ""
    for prefix in STAGE_TAGS:
        matched = logger_name == prefix or logger_name.startswith(prefix + ".")
        if matched and len(prefix) > len(best):
            best = prefix
    return STAGE_TAGS.get(best, "")


class StageFilter(logging.Filter):
    """为记录附加 stage / stage_tag 字段"""

    def filter(self, record: logging.LogRecord) -> bool:
        stage = stage_of(record.name)
        record.stage = stage
        record.stage_tag = f"[{stage}] " if stage else ""
        return True


class JSONFormatter(logging.Formatter):
    """结构化 JSON 日志格式器，便于 CI 流水线消费"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": record.lineno,
        }
        stage = getattr(record, "stage", "")
        if stage:
            log_entry["stage"] = stage
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, ensure_ascii=False)


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """配置根日志器

    参数:
        level: 日志级别字符串（DEBUG, INFO, WARNING, ERROR）
        json_output: 为 True 时使用 JSON 格式（适用于 CI）

    说明:
        - 输出到 stderr，stdout 留给命令摘要和外部工具透传输出
        - 自动清理已有 handlers，重复调用不会重复输出
    """
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(StageFilter())
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    root.addHandler(handler)
