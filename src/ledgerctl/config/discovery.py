"""Config file discovery and loading.

Walk-up finder locates ledgerctl.toml, similar to how git finds .git/.
Supports the LEDGERCTL_CONFIG env var and the --config CLI flag.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from ledgerctl.config.models import LedgerctlConfig

CONFIG_FILENAME = "ledgerctl.toml"
CONFIG_ENV_VAR = "LEDGERCTL_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for ledgerctl.toml.

    LEDGERCTL_CONFIG, when set, short-circuits the search: it names the file
    directly and yields None if that file does not exist.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        return p if p.is_file() else None

    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_config(path: Path | None = None, cwd: Path | None = None) -> LedgerctlConfig:
    """Load and validate ledgerctl.toml; defaults when no file is found."""
    if path is None:
        path = find_config(cwd)
    if path is None:
        return LedgerctlConfig()

    data: dict[str, Any] = tomllib.loads(path.read_text(encoding="utf-8"))
    return LedgerctlConfig.model_validate(data)
