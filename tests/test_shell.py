import pytest

from llvmenv.config import Settings
from llvmenv.errors import ConfigError
from llvmenv.shell import RUST_BINDING_ENV, llvm_sys_variable, shell_script


def test_zsh_script_hooks_precmd(settings: Settings) -> None:
    script = shell_script("zsh", settings)

    assert "add-zsh-hook precmd llvmenv_update" in script
    assert f"{settings.data_dir}/*" in script
    assert str(settings.system_prefix) in script
    assert RUST_BINDING_ENV in script
    assert "llvmenv version --llvm-sys" in script


def test_bash_script_installs_prompt_command(settings: Settings) -> None:
    script = shell_script("bash", settings)

    assert 'PROMPT_COMMAND="llvmenv_update' in script
    assert "{data_dir}" not in script
    assert "{system_prefix}" not in script


def test_unsupported_shell_is_config_error(settings: Settings) -> None:
    with pytest.raises(ConfigError, match="fish"):
        shell_script("fish", settings)


@pytest.mark.parametrize(
    ("version", "name"),
    [((7, 0, 1), "LLVM_SYS_70_PREFIX"), ((17, 0, 6), "LLVM_SYS_170_PREFIX")],
)
def test_llvm_sys_variable(version: tuple[int, int, int], name: str) -> None:
    assert llvm_sys_variable(version) == name
