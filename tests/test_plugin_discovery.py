"""Tests for core discovery."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from emushell.errors import DescriptorParseError, DiscoveryError, PluginConstructionError
from emushell.plugins.cpu_features import CpuFeatures
from emushell.plugins.plugin_manager import PluginDiscovery


def _make_cores(root: Path, *names: str) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    for name in names:
        (root / name).write_bytes(b"\x7fELF")
    return root


def _listing_order(root: Path, exclude_prefix: str = "libretroarch") -> list[str]:
    return [p.name for p in root.iterdir() if not p.name.startswith(exclude_prefix)]


@pytest.fixture
def discovery() -> PluginDiscovery:
    return PluginDiscovery()


class TestDiscovery:
    def test_reference_scenario(self, tmp_path: Path, discovery: PluginDiscovery) -> None:
        lib_dir = _make_cores(
            tmp_path / "lib", "libretroarch.so", "libretro_core_a.so", "core_b.so"
        )
        result = discovery.discover(lib_dir, b'core_a = "Core Alpha"\n')

        assert len(result) == 2
        assert [d.file_name for d in result] == _listing_order(lib_dir)
        names = {d.file_name: d.display_name for d in result}
        assert names == {"libretro_core_a.so": "Core Alpha", "core_b.so": "core_b"}
        assert result.table_loaded
        assert result.errors == []

    def test_excludes_all_reserved_prefix_entries(
        self, tmp_path: Path, discovery: PluginDiscovery
    ) -> None:
        plugins = [f"libretro_core{i}.so" for i in range(5)]
        reserved = ["libretroarch.so", "libretroarch_jni.so", "libretroarch-activity.so"]
        lib_dir = _make_cores(tmp_path / "lib", *plugins, *reserved)

        result = discovery.discover(lib_dir)

        assert len(result) == len(plugins)
        assert [d.file_name for d in result] == _listing_order(lib_dir)

    def test_descriptors_have_absolute_paths(self, tmp_path: Path, discovery: PluginDiscovery) -> None:
        lib_dir = _make_cores(tmp_path / "lib", "libretro_x.so")
        (descriptor,) = discovery.discover(lib_dir).descriptors
        assert descriptor.file_path.is_absolute()
        assert descriptor.file_path == (lib_dir / "libretro_x.so").absolute()
        assert descriptor.core_id == "libretro_x"

    def test_table_metadata_carried_over(self, tmp_path: Path, discovery: PluginDiscovery) -> None:
        lib_dir = _make_cores(tmp_path / "lib", "libretro_snes9x.so")
        table = b"snes9x = SNES9x\nsnes9x_notes = Accurate\nsnes9x_library = libretro_snes9x.so\n"
        (descriptor,) = discovery.discover(lib_dir, io.BytesIO(table)).descriptors
        assert descriptor.display_name == "SNES9x"
        assert descriptor.notes == "Accurate"
        assert descriptor.library_name == "libretro_snes9x.so"

    def test_custom_reserved_prefix(self, tmp_path: Path) -> None:
        lib_dir = _make_cores(tmp_path / "lib", "libhost.so", "libretro_a.so")
        result = PluginDiscovery(reserved_prefix="libhost").discover(lib_dir)
        assert [d.file_name for d in result] == ["libretro_a.so"]

    def test_subdirectories_are_not_cores(self, tmp_path: Path, discovery: PluginDiscovery) -> None:
        lib_dir = _make_cores(tmp_path / "lib", "libretro_a.so")
        (lib_dir / "nested").mkdir()
        (lib_dir / "nested" / "libretro_b.so").write_bytes(b"")
        result = discovery.discover(lib_dir)
        assert [d.file_name for d in result] == ["libretro_a.so"]

    def test_empty_directory(self, tmp_path: Path, discovery: PluginDiscovery) -> None:
        lib_dir = tmp_path / "lib"
        lib_dir.mkdir()
        result = discovery.discover(lib_dir)
        assert len(result) == 0
        assert result.errors == []


class TestDiscoveryFailures:
    def test_missing_directory_is_fatal(self, tmp_path: Path, discovery: PluginDiscovery) -> None:
        missing = tmp_path / "nope"
        with pytest.raises(DiscoveryError) as exc:
            discovery.discover(missing)
        assert exc.value.path == str(missing)

    def test_file_instead_of_directory_is_fatal(
        self, tmp_path: Path, discovery: PluginDiscovery
    ) -> None:
        not_a_dir = tmp_path / "file.so"
        not_a_dir.write_bytes(b"")
        with pytest.raises(DiscoveryError):
            discovery.discover(not_a_dir)

    def test_discover_or_empty_swallows_fatal_error(
        self, tmp_path: Path, discovery: PluginDiscovery
    ) -> None:
        result = discovery.discover_or_empty(tmp_path / "nope")
        assert len(result) == 0
        assert len(result.errors) == 1
        assert isinstance(result.errors[0], DiscoveryError)

    def test_bad_descriptor_table_falls_back_to_filenames(
        self, tmp_path: Path, discovery: PluginDiscovery
    ) -> None:
        lib_dir = _make_cores(tmp_path / "lib", "libretro_core_a.so", "core_b.so")
        result = discovery.discover(lib_dir, b"core_a = Core Alpha\ngarbage line\n")

        assert sorted(d.display_name for d in result) == ["core_a", "core_b"]
        assert not result.table_loaded
        assert len(result.errors) == 1
        assert isinstance(result.errors[0], DescriptorParseError)

    def test_broken_entry_is_skipped(self, tmp_path: Path, discovery: PluginDiscovery) -> None:
        lib_dir = _make_cores(tmp_path / "lib", "libretro_a.so", "libretro_c.so")
        (lib_dir / "libretro_b.so").symlink_to(tmp_path / "does-not-exist.so")

        result = discovery.discover(lib_dir)

        assert sorted(d.file_name for d in result) == ["libretro_a.so", "libretro_c.so"]
        assert len(result.errors) == 1
        assert isinstance(result.errors[0], PluginConstructionError)
        assert result.errors[0].path.endswith("libretro_b.so")


class TestCapability:
    def test_plain_builds_always_supported(self, tmp_path: Path) -> None:
        lib_dir = _make_cores(tmp_path / "lib", "libretro_pcsx_rearmed.so")
        (descriptor,) = PluginDiscovery(cpu_features=CpuFeatures()).discover(lib_dir).descriptors
        assert descriptor.supports_capability

    def test_variant_follows_host_cpu(self, tmp_path: Path) -> None:
        lib_dir = _make_cores(tmp_path / "lib", "libretro_pcsx_rearmed_neon.so")

        without = PluginDiscovery(cpu_features=CpuFeatures()).discover(lib_dir)
        with_neon = PluginDiscovery(cpu_features=CpuFeatures({"neon"})).discover(lib_dir)

        assert not without.descriptors[0].supports_capability
        assert with_neon.descriptors[0].supports_capability

    def test_hide_unsupported_variants(self, tmp_path: Path) -> None:
        lib_dir = _make_cores(
            tmp_path / "lib", "libretro_pcsx_rearmed.so", "libretro_pcsx_rearmed_neon.so"
        )
        discovery = PluginDiscovery(cpu_features=CpuFeatures(), hide_unsupported_variants=True)
        result = discovery.discover(lib_dir)
        assert [d.file_name for d in result] == ["libretro_pcsx_rearmed.so"]
