from pathlib import Path

import pytest

from helpers import install_fake_llvm
from llvmenv.errors import ConfigError, NotFoundError, StaleSelectionError
from llvmenv.registry import BuildRegistry
from llvmenv.resolver import PrefixResolver, SelectionSource, find_local_marker


@pytest.fixture
def registry(tmp_path: Path) -> BuildRegistry:
    registry = BuildRegistry(tmp_path / "data", system_prefix=tmp_path / "usr")
    for name in ("x", "y"):
        install_fake_llvm(registry.layout(name).install_prefix)
        registry.mark_installed(name, fingerprint="f" * 64)
    return registry


@pytest.fixture
def resolver(registry: BuildRegistry, tmp_path: Path) -> PrefixResolver:
    return PrefixResolver(registry, global_marker=tmp_path / "config" / ".llvmenv")


def test_default_is_system(resolver: PrefixResolver, tmp_path: Path) -> None:
    work = tmp_path / "work"
    work.mkdir()

    resolution = resolver.resolve(work)

    assert resolution.name == "system"
    assert resolution.prefix == tmp_path / "usr"
    assert resolution.source is SelectionSource.DEFAULT


def test_nearest_local_marker_wins(resolver: PrefixResolver, registry: BuildRegistry, tmp_path: Path) -> None:
    outer = tmp_path / "a"
    inner = outer / "b"
    deeper = inner / "c"
    deeper.mkdir(parents=True)
    resolver.set_global("y")
    resolver.set_local("x", outer)

    assert resolver.resolve(deeper).name == "x"
    assert resolver.resolve(deeper).prefix == registry.layout("x").install_prefix

    resolver.set_local("y", inner)

    assert resolver.resolve(deeper).name == "y"
    assert resolver.resolve(outer).name == "x"
    assert resolver.resolve(deeper).source is SelectionSource.LOCAL
    assert resolver.resolve(deeper).marker == inner / ".llvmenv"


def test_global_marker_applies_without_local(resolver: PrefixResolver, tmp_path: Path) -> None:
    work = tmp_path / "work"
    work.mkdir()

    resolver.set_global("y")
    resolution = resolver.resolve(work)

    assert resolution.name == "y"
    assert resolution.source is SelectionSource.GLOBAL
    assert resolver.global_marker.read_text(encoding="utf-8") == "y\n"


def test_marker_whitespace_is_stripped(resolver: PrefixResolver, tmp_path: Path) -> None:
    (tmp_path / "proj").mkdir()
    (tmp_path / "proj" / ".llvmenv").write_text("  x \n\n", encoding="utf-8")

    assert resolver.resolve(tmp_path / "proj").name == "x"


def test_empty_marker_is_config_error(resolver: PrefixResolver, tmp_path: Path) -> None:
    (tmp_path / "proj").mkdir()
    (tmp_path / "proj" / ".llvmenv").write_text("\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="empty"):
        resolver.resolve(tmp_path / "proj")


def test_marker_naming_removed_build_is_stale(
    resolver: PrefixResolver, registry: BuildRegistry, tmp_path: Path
) -> None:
    (tmp_path / "proj").mkdir()
    resolver.set_local("x", tmp_path / "proj")
    registry.remove("x")

    with pytest.raises(StaleSelectionError) as excinfo:
        resolver.resolve(tmp_path / "proj")

    assert excinfo.value.context["build"] == "x"
    assert excinfo.value.context["source"] == "local"


def test_set_unknown_build_leaves_markers_unchanged(resolver: PrefixResolver, tmp_path: Path) -> None:
    proj = tmp_path / "proj"
    proj.mkdir()
    resolver.set_local("x", proj)
    resolver.set_global("y")

    with pytest.raises(NotFoundError):
        resolver.set_local("nope", proj)
    with pytest.raises(NotFoundError):
        resolver.set_global("nope")

    assert (proj / ".llvmenv").read_text(encoding="utf-8") == "x\n"
    assert resolver.global_marker.read_text(encoding="utf-8") == "y\n"


def test_set_local_requires_existing_directory(resolver: PrefixResolver, tmp_path: Path) -> None:
    with pytest.raises(NotFoundError, match="Directory"):
        resolver.set_local("x", tmp_path / "missing")


def test_system_can_be_selected_explicitly(resolver: PrefixResolver, tmp_path: Path) -> None:
    proj = tmp_path / "proj"
    proj.mkdir()
    resolver.set_global("x")
    resolver.set_local("system", proj)

    resolution = resolver.resolve(proj)

    assert resolution.name == "system"
    assert resolution.prefix == tmp_path / "usr"


def test_find_local_marker_ignores_directories_named_like_markers(tmp_path: Path) -> None:
    (tmp_path / "a" / ".llvmenv").mkdir(parents=True)

    assert find_local_marker(tmp_path / "a") != tmp_path / "a" / ".llvmenv"
