"""DevEnvConfig 测试"""

from __future__ import annotations

from pathlib import Path

import pytest

import oasisdev.core.config as cfgmod
from oasisdev.core.config import CONFIG_ENV_VAR, DevEnvConfig, get_config, init_config
from oasisdev.core.exceptions import ConfigError


@pytest.fixture(autouse=True)
def _reset_current(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(cfgmod, "_current", None)
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


class TestDevEnvConfig:
    def test_defaults(self) -> None:
        cfg = DevEnvConfig()
        assert cfg.image_ref == "oasis-dev:latest"
        assert cfg.min_runtime_version == "20.10"
        assert cfg.min_free_disk_gb == 4
        assert "build-cache" in cfg.volume_names

    def test_missing_file_returns_defaults(self, tmp_path: Path) -> None:
        cfg = DevEnvConfig.from_file(tmp_path / "none.yml", project_root=str(tmp_path))
        assert cfg.image_name == "oasis-dev"
        assert cfg.root == tmp_path

    def test_load_with_extra(self, tmp_path: Path) -> None:
        p = tmp_path / "oasisdev.yml"
        p.write_text("image_name: oasis-ci\nmin_free_disk_gb: 10\nowner: team\n", encoding="utf-8")
        cfg = DevEnvConfig.from_file(p)
        assert cfg.image_ref == "oasis-ci:latest"
        assert cfg.min_free_disk_gb == 10
        assert cfg.extra == {"owner": "team"}

    def test_non_mapping_rejected(self, tmp_path: Path) -> None:
        p = tmp_path / "oasisdev.yml"
        p.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="映射"):
            DevEnvConfig.from_file(p)

    def test_bad_disk_threshold(self, tmp_path: Path) -> None:
        p = tmp_path / "oasisdev.yml"
        p.write_text("min_free_disk_gb: lots\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="min_free_disk_gb"):
            DevEnvConfig.from_file(p)


class TestInitConfig:
    def test_get_config_default(self) -> None:
        assert get_config().project_root == "."

    def test_init_from_project_root(self, tmp_path: Path) -> None:
        (tmp_path / "oasisdev.yml").write_text("container_name: dev1\n", encoding="utf-8")
        cfg = init_config(str(tmp_path))
        assert cfg.container_name == "dev1"
        assert get_config() is cfg

    def test_env_override_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        other = tmp_path / "custom.yml"
        other.write_text("image_tag: v2\n", encoding="utf-8")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(other))
        cfg = init_config(str(tmp_path))
        assert cfg.image_tag == "v2"
        assert cfg.project_root == str(tmp_path)


def test_relative_root_is_resolved(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    cfg = init_config(".")
    assert cfg.root.is_absolute()
    assert cfg.root == tmp_path.resolve()
