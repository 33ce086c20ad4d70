"""CMake command lines for configuring and building an entry."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from llvmenv.entry.model import CMakeGenerator, Entry


@dataclass(frozen=True, slots=True)
class ConfigureInputs:
    """Everything that decides the result of the configure step."""

    source_dir: Path
    install_prefix: Path
    generator: CMakeGenerator
    build_type: str
    targets: tuple[str, ...] = ()
    enable_examples: bool = False
    enable_documentation: bool = False
    options: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    @classmethod
    def for_entry(
        cls,
        entry: Entry,
        *,
        source_dir: Path,
        install_prefix: Path,
        generator: CMakeGenerator | None = None,
    ) -> ConfigureInputs:
        opts = entry.options
        return cls(
            source_dir=entry.cmake_source_dir(source_dir),
            install_prefix=install_prefix,
            generator=generator or opts.generator,
            build_type=opts.build_type.value,
            targets=tuple(sorted(opts.target_architectures)),
            enable_examples=opts.enable_examples,
            enable_documentation=opts.enable_documentation,
            options=tuple(sorted(opts.options.items())),
        )


def configure_command(inputs: ConfigureInputs) -> list[str]:
    examples = _on_off(inputs.enable_examples)
    docs = _on_off(inputs.enable_documentation)
    command = [
        "cmake",
        *inputs.generator.configure_args(),
        str(inputs.source_dir),
        f"-DCMAKE_INSTALL_PREFIX={inputs.install_prefix}",
        f"-DCMAKE_BUILD_TYPE={inputs.build_type}",
    ]
    if inputs.targets:
        command.append(f"-DLLVM_TARGETS_TO_BUILD={';'.join(inputs.targets)}")
    command.extend(
        [
            f"-DLLVM_INCLUDE_EXAMPLES={examples}",
            f"-DLLVM_BUILD_EXAMPLES={examples}",
            f"-DLLVM_INCLUDE_DOCS={docs}",
            f"-DLLVM_BUILD_DOCS={docs}",
        ]
    )
    command.extend(f"-D{key}={value}" for key, value in inputs.options)
    return command


def build_command(build_dir: Path, generator: CMakeGenerator, jobs: int) -> list[str]:
    return [
        "cmake",
        "--build",
        str(build_dir),
        "--target",
        "install",
        *generator.build_args(jobs),
    ]


def _on_off(flag: bool) -> str:
    return "ON" if flag else "OFF"
