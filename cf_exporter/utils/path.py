from __future__ import annotations
import os
from pathlib import Path
from typing import Optional

from ..errors import ConfigError

BASE_DIR = Path(__file__).parent.parent.resolve()


def to_abs_path(p: Optional[str | os.PathLike]) -> Optional[Path]:
    """Resolve a config or certificate path.

    ~ is expanded; a relative path is looked up in the working directory
    first and falls back to the installed package directory.
    """
    if not p:
        return None
    path = Path(p).expanduser()
    if path.is_absolute():
        return path.resolve()
    local = Path.cwd() / path
    if local.exists():
        return local.resolve()
    return (BASE_DIR / path).resolve()


def existing_file(p: Optional[str | os.PathLike], what: str) -> str:
    """Resolve an optional file flag; empty stays empty, a missing file is a ConfigError."""
    path = to_abs_path(p)
    if path is None:
        return ""
    if not path.is_file():
        raise ConfigError(f"{what} '{p}' does not exist or is not a file")
    return str(path)
