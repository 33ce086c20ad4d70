import json
from pathlib import Path

import pytest

from helpers import install_fake_llvm
from llvmenv.errors import ConfigError, NotFoundError
from llvmenv.registry import STAMP_NAME, BuildRegistry, parse_version


def _install(registry: BuildRegistry, name: str, version: str = "7.0.1") -> Path:
    layout = registry.layout(name)
    install_fake_llvm(layout.install_prefix, version)
    registry.mark_installed(name, fingerprint="0" * 64)
    return layout.install_prefix


def test_list_puts_system_first_then_sorted_builds(tmp_path: Path) -> None:
    registry = BuildRegistry(tmp_path / "data", system_prefix=tmp_path / "usr")
    _install(registry, "llvm-mirror")
    _install(registry, "6.0.1")
    (tmp_path / "data" / "half-built" / "build").mkdir(parents=True)

    names = [build.name for build in registry.list()]

    assert names == ["system", "6.0.1", "llvm-mirror"]
    assert registry.list()[0].install_prefix == tmp_path / "usr"


def test_list_on_missing_data_root_has_only_system(tmp_path: Path) -> None:
    registry = BuildRegistry(tmp_path / "nothing")

    assert [build.name for build in registry.list()] == ["system"]


def test_prefix_of_known_entry_before_build(tmp_path: Path) -> None:
    registry = BuildRegistry(tmp_path / "data", known_entries=["llvm-mirror"])

    assert registry.prefix_of("system") == Path("/usr")
    assert registry.prefix_of("llvm-mirror") == tmp_path / "data" / "llvm-mirror" / "prefix"
    with pytest.raises(NotFoundError):
        registry.prefix_of("unknown")


def test_get_missing_build_is_not_found(tmp_path: Path) -> None:
    with pytest.raises(NotFoundError):
        BuildRegistry(tmp_path).get("llvm-mirror")


def test_stamp_records_install_details(tmp_path: Path) -> None:
    registry = BuildRegistry(tmp_path / "data")
    prefix = _install(registry, "dev")

    stamp = json.loads((tmp_path / "data" / "dev" / STAMP_NAME).read_text(encoding="utf-8"))

    assert stamp["install_prefix"] == str(prefix)
    assert stamp["fingerprint"] == "0" * 64


def test_remove_keeps_source_by_default(tmp_path: Path) -> None:
    registry = BuildRegistry(tmp_path / "data")
    _install(registry, "dev")
    layout = registry.layout("dev")
    layout.source_dir.mkdir(parents=True)
    layout.build_dir.mkdir(parents=True)

    registry.remove("dev")

    assert not registry.exists("dev")
    assert layout.source_dir.is_dir()
    assert not layout.build_dir.exists()
    assert not layout.install_prefix.exists()

    registry.remove("dev", keep_source=False)
    assert not (tmp_path / "data" / "dev").exists()


def test_system_build_cannot_be_removed(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        BuildRegistry(tmp_path).remove("system")


def test_version_probes_llvm_config(tmp_path: Path) -> None:
    registry = BuildRegistry(tmp_path / "data")
    _install(registry, "dev", version="6.0.1")

    assert registry.version("dev") == (6, 0, 1)


@pytest.mark.parametrize(
    ("output", "expected"),
    [
        ("7.0.1", (7, 0, 1)),
        ("clang version 6.0.1-svn331815-1~exp1 (branches/release_60)", (6, 0, 1)),
        ("LLVM (http://llvm.org/):\n  LLVM version 17.0.6\n", (17, 0, 6)),
    ],
)
def test_parse_version(output: str, expected: tuple[int, int, int]) -> None:
    assert parse_version(output) == expected


def test_parse_version_without_number_is_not_found() -> None:
    with pytest.raises(NotFoundError):
        parse_version("no version here")


def test_archive_and_expand_move_a_build_between_roots(tmp_path: Path) -> None:
    source = BuildRegistry(tmp_path / "a")
    _install(source, "llvm-7")

    archive = source.archive("llvm-7", tmp_path / "out")
    target = BuildRegistry(tmp_path / "b")
    build = target.expand(archive)

    assert archive.name == "llvm-7.tar.xz"
    assert build.name == "llvm-7"
    assert target.version("llvm-7") == (7, 0, 1)
    with pytest.raises(ConfigError, match="already exists"):
        target.expand(archive)


def test_invalid_names_never_touch_the_filesystem(tmp_path: Path) -> None:
    registry = BuildRegistry(tmp_path / "data")

    assert registry.exists("../escape") is False
    with pytest.raises(ConfigError):
        registry.layout("../escape")
