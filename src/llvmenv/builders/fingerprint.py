"""Configure fingerprint derivation and its marker file in the build directory."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

from llvmenv.builders.cmake import ConfigureInputs
from llvmenv.fsutil import atomic_write_text

CONFIGURE_MARKER = ".llvmenv-configure.json"


def configure_fingerprint(inputs: ConfigureInputs) -> str:
    canonical = json.dumps(_to_payload(inputs), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def read_marker(build_dir: Path) -> str | None:
    """Return the stored fingerprint, or ``None`` when absent or unreadable."""
    try:
        parsed = json.loads((build_dir / CONFIGURE_MARKER).read_text(encoding="utf-8"))
    except (FileNotFoundError, json.JSONDecodeError):
        return None
    if not isinstance(parsed, dict):
        return None
    value = parsed.get("fingerprint")
    return value if isinstance(value, str) else None


def write_marker(build_dir: Path, inputs: ConfigureInputs) -> str:
    fingerprint = configure_fingerprint(inputs)
    payload = {"fingerprint": fingerprint, "inputs": _to_payload(inputs)}
    atomic_write_text(
        build_dir / CONFIGURE_MARKER,
        json.dumps(payload, indent=2, sort_keys=True) + "\n",
    )
    return fingerprint


def clear_marker(build_dir: Path) -> None:
    (build_dir / CONFIGURE_MARKER).unlink(missing_ok=True)


def _to_payload(inputs: ConfigureInputs) -> dict[str, Any]:
    return {
        "source_dir": str(inputs.source_dir),
        "install_prefix": str(inputs.install_prefix),
        "generator": inputs.generator.value,
        "build_type": inputs.build_type,
        "targets": list(inputs.targets),
        "enable_examples": inputs.enable_examples,
        "enable_documentation": inputs.enable_documentation,
        "options": [list(item) for item in inputs.options],
    }
