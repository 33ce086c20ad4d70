"""Shell-integration scripts that keep PATH pointed at the resolved prefix."""

from __future__ import annotations

import shlex
import textwrap

from llvmenv.config import Settings
from llvmenv.errors import ConfigError

SUPPORTED_SHELLS = ("zsh", "bash")
RUST_BINDING_ENV = "LLVMENV_RUST_BINDING"


def llvm_sys_variable(version: tuple[int, int, int]) -> str:
    """Name of the variable llvm-sys reads for a given LLVM version.

    >>> llvm_sys_variable((7, 0, 1))
    'LLVM_SYS_70_PREFIX'
    """
    major, minor, _ = version
    return f"LLVM_SYS_{major}{minor}_PREFIX"


def shell_script(shell: str, settings: Settings) -> str:
    data_dir = shlex.quote(str(settings.data_dir))
    system_prefix = shlex.quote(str(settings.system_prefix))
    if shell == "zsh":
        return _ZSH.format(data_dir=data_dir, system_prefix=system_prefix, env=RUST_BINDING_ENV)
    if shell == "bash":
        return _BASH.format(data_dir=data_dir, system_prefix=system_prefix, env=RUST_BINDING_ENV)
    raise ConfigError(
        f"Unsupported shell: {shell}",
        hint=f"Use one of {', '.join(SUPPORTED_SHELLS)}.",
    )


_ZSH = textwrap.dedent(
    """\
    #!/usr/bin/zsh
    # Generated by `llvmenv zsh`; load it with: source <(llvmenv zsh)

    function llvmenv_remove_path() {{
      path=("${{(@)path:#{data_dir}/*}}")
    }}

    function llvmenv_append_path() {{
      local prefix
      prefix=$(llvmenv prefix 2>/dev/null) || return
      # keep /usr/bin and /bin from moving to the top of $PATH
      if [[ -n "$prefix" && "$prefix" != {system_prefix} ]]; then
        path=($prefix/bin(N-/) $path)
      fi
    }}

    function llvmenv_env_llvm_sys() {{
      local var
      var=$(llvmenv version --llvm-sys 2>/dev/null) || return
      export "$var"="$(llvmenv prefix)"
    }}

    function llvmenv_update() {{
      llvmenv_remove_path
      llvmenv_append_path
      if [[ -n "${env}" ]]; then
        llvmenv_env_llvm_sys
      fi
    }}

    autoload -Uz add-zsh-hook
    add-zsh-hook precmd llvmenv_update
    """
)

_BASH = textwrap.dedent(
    """\
    # Generated by `llvmenv bash`; load it with: eval "$(llvmenv bash)"

    llvmenv_remove_path() {{
      local IFS=:
      local kept=() dir
      for dir in $PATH; do
        case "$dir" in
          {data_dir}/*) ;;
          *) kept+=("$dir") ;;
        esac
      done
      PATH="${{kept[*]}}"
    }}

    llvmenv_append_path() {{
      local prefix
      prefix=$(llvmenv prefix 2>/dev/null) || return
      if [[ -n "$prefix" && "$prefix" != {system_prefix} && -d "$prefix/bin" ]]; then
        PATH="$prefix/bin:$PATH"
      fi
    }}

    llvmenv_env_llvm_sys() {{
      local var
      var=$(llvmenv version --llvm-sys 2>/dev/null) || return
      export "$var"="$(llvmenv prefix)"
    }}

    llvmenv_update() {{
      llvmenv_remove_path
      llvmenv_append_path
      if [[ -n "${env}" ]]; then
        llvmenv_env_llvm_sys
      fi
    }}

    case ";$PROMPT_COMMAND;" in
      *";llvmenv_update;"*) ;;
      *) PROMPT_COMMAND="llvmenv_update${{PROMPT_COMMAND:+;$PROMPT_COMMAND}}" ;;
    esac
    """
)
