"""Tests for the Config system."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from emushell.config import Config, reset_config
from emushell.models.asset import AssetGroup


@pytest.fixture(autouse=True)
def _clean_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(data_dir=tmp_path)


class TestConfig:
    def test_default_values(self, config: Config) -> None:
        assert config.reserved_prefix == "libretroarch"
        assert config.stamp_file == ".cacheversion"
        assert config.advance_stamp_on_group_failure is True
        assert config.software_version == 0
        assert config.plugin_dir is None
        assert config.asset_bundle is None
        assert config.asset_groups == [AssetGroup("shaders"), AssetGroup("overlays")]

    def test_set_and_get(self, config: Config) -> None:
        with config.batch_update():
            config.set("plugin_dir", "/data/app/lib")
        assert config.plugin_dir == Path("/data/app/lib")

    def test_batch_update_persists(self, tmp_path: Path, config: Config) -> None:
        with config.batch_update():
            config.set("software_version", 7)
            config.set("asset_bundle", "/pkg/base.apk")

        reloaded = Config(data_dir=tmp_path)
        assert reloaded.software_version == 7
        assert reloaded.asset_bundle == Path("/pkg/base.apk")

    def test_dot_path_access(self, config: Config) -> None:
        config.set("active_core.name", "Core Alpha")
        assert config.get("active_core.name") == "Core Alpha"
        assert config.get("active_core.missing", "x") == "x"

    def test_corrupt_file_uses_defaults(self, tmp_path: Path) -> None:
        (tmp_path / "config.json").write_text("{not json", encoding="utf-8")
        config = Config(data_dir=tmp_path)
        assert config.reserved_prefix == "libretroarch"

    def test_asset_groups_accept_objects(self, tmp_path: Path) -> None:
        (tmp_path / "config.json").write_text(
            json.dumps(
                {
                    "asset_groups": [
                        {"name": "shaders", "source": "shaders_glsl", "target": "shaders"},
                        "overlays",
                        42,
                    ]
                }
            ),
            encoding="utf-8",
        )
        config = Config(data_dir=tmp_path)
        assert config.asset_groups == [
            AssetGroup("shaders", source="shaders_glsl", target="shaders"),
            AssetGroup("overlays"),
        ]

    def test_active_core_default_unset(self, config: Config) -> None:
        assert not config.active_core.is_set

    def test_non_numeric_software_version_falls_back_to_zero(self, tmp_path: Path) -> None:
        (tmp_path / "config.json").write_text(
            json.dumps({"software_version": "1.2-beta"}), encoding="utf-8"
        )
        assert Config(data_dir=tmp_path).software_version == 0
