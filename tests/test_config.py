from pathlib import Path

import pytest

from llvmenv.config import RetryPolicy, Settings, init_config
from llvmenv.errors import (
    BuildError,
    ConfigError,
    ErrorCode,
    FetchError,
    NotFoundError,
    StaleSelectionError,
    exit_code_for,
)


def test_settings_follow_xdg_directories(tmp_path: Path) -> None:
    env = {
        "HOME": str(tmp_path / "home"),
        "XDG_CONFIG_HOME": str(tmp_path / "xdg-config"),
        "XDG_DATA_HOME": str(tmp_path / "xdg-data"),
    }

    settings = Settings.from_env(env)

    assert settings.config_dir == tmp_path / "xdg-config" / "llvmenv"
    assert settings.data_dir == tmp_path / "xdg-data" / "llvmenv"
    assert settings.cache_dir == tmp_path / "home" / ".cache" / "llvmenv"
    assert settings.system_prefix == Path("/usr")
    assert settings.entry_toml == settings.config_dir / "entry.toml"
    assert settings.global_marker == settings.config_dir / ".llvmenv"


def test_relative_xdg_value_is_ignored(tmp_path: Path) -> None:
    settings = Settings.from_env({"HOME": str(tmp_path), "XDG_DATA_HOME": "relative/data"})

    assert settings.data_dir == tmp_path / ".local" / "share" / "llvmenv"


def test_fetch_attempts_and_system_prefix_from_env(tmp_path: Path) -> None:
    settings = Settings.from_env(
        {
            "HOME": str(tmp_path),
            "LLVMENV_FETCH_ATTEMPTS": "5",
            "LLVMENV_SYSTEM_PREFIX": "/opt/llvm",
        }
    )

    assert settings.retry.attempts == 5
    assert settings.system_prefix == Path("/opt/llvm")


@pytest.mark.parametrize("raw", ["many", "0"])
def test_invalid_fetch_attempts_is_config_error(tmp_path: Path, raw: str) -> None:
    with pytest.raises(ConfigError, match="LLVMENV_FETCH_ATTEMPTS"):
        Settings.from_env({"HOME": str(tmp_path), "LLVMENV_FETCH_ATTEMPTS": raw})


def test_retry_delay_grows_exponentially() -> None:
    policy = RetryPolicy(attempts=4, backoff=0.5, factor=2.0)

    assert [policy.delay(attempt) for attempt in (1, 2, 3)] == [0.5, 1.0, 2.0]


def test_init_config_writes_default_table_once(settings: Settings) -> None:
    path = init_config(settings)

    assert path.read_text(encoding="utf-8").startswith("# Entries describe")
    with pytest.raises(ConfigError, match="already exists"):
        init_config(settings)


@pytest.mark.parametrize(
    ("error", "code", "exit_code"),
    [
        (ConfigError("bad"), ErrorCode.CONFIG, 3),
        (NotFoundError("missing"), ErrorCode.NOT_FOUND, 4),
        (FetchError("offline"), ErrorCode.FETCH, 5),
        (BuildError("failed", stage="compiling", returncode=2), ErrorCode.BUILD, 6),
        (StaleSelectionError("stale"), ErrorCode.STALE_SELECTION, 7),
    ],
)
def test_errors_map_to_stable_codes(error, code: ErrorCode, exit_code: int) -> None:
    assert error.code == code.value
    assert exit_code_for(error) == exit_code


def test_build_error_renders_stage_and_output_tail() -> None:
    error = BuildError(
        "Build step `compiling` failed.",
        stage="compiling",
        returncode=2,
        tail=("ld: out of memory",),
        hint="Retry with fewer jobs.",
        context={"entry": "llvm-mirror"},
    )

    rendered = str(error)
    payload = error.to_dict()

    assert "Hint: Retry with fewer jobs." in rendered
    assert "ld: out of memory" in rendered
    assert payload["code"] == "E_BUILD"
    assert payload["context"]["stage"] == "compiling"
    assert payload["context"]["returncode"] == "2"
    assert error.tail == ("ld: out of memory",)


def test_error_payload_keeps_bare_message_and_exit_code() -> None:
    error = NotFoundError(
        "No such build.",
        hint="List builds with `llvmenv builds`.",
        context={"build": "llvm-9", "marker": ""},
    )

    assert error.to_dict() == {
        "code": "E_NOT_FOUND",
        "exit_code": 4,
        "message": "No such build.",
        "context": {"build": "llvm-9", "marker": ""},
        "hint": "List builds with `llvmenv builds`.",
    }
    assert str(error).splitlines() == [
        "No such build.",
        "Hint: List builds with `llvmenv builds`.",
        "  build: llvm-9",
    ]


def test_multiline_context_is_indented_under_its_key() -> None:
    error = BuildError(
        "Build step `configuring` failed.",
        stage="configuring",
        returncode=1,
        tail=("CMake Error at CMakeLists.txt:3:", "  project() missing"),
    )

    assert str(error).splitlines()[-3:] == [
        "  output:",
        "    CMake Error at CMakeLists.txt:3:",
        "      project() missing",
    ]
