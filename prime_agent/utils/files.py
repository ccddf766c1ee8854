"""File primitives — text reads and writes that raise prime-agent errors.

Files are read and written as UTF-8 with newline translation disabled so
that section bodies round-trip byte for byte, ``\\r`` included.
"""

from __future__ import annotations

import logging
from pathlib import Path

from prime_agent.errors import IOFailure, NotFound

logger = logging.getLogger(__name__)


def read_text(path: str | Path, kind: str = "file") -> str:
    """Read a text file; a missing file raises NotFound naming ``kind``.

    Content that is not valid UTF-8 raises IOFailure with action "decode".
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()
    except FileNotFoundError:
        raise NotFound(kind, path) from None
    except UnicodeDecodeError as e:
        raise IOFailure(path, "decode", e) from e
    except OSError as e:
        raise IOFailure(path, "read", e) from e


def read_text_if_exists(path: str | Path) -> str | None:
    path = Path(path)
    if not path.exists():
        return None
    return read_text(path)


def write_text(path: str | Path, content: str) -> None:
    path = Path(path)
    try:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
    except OSError as e:
        raise IOFailure(path, "write", e) from e
    logger.debug("Wrote %d bytes to %s", len(content), path)


def ensure_dir(path: str | Path) -> None:
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IOFailure(path, "create directory", e) from e


def remove_file(path: str | Path, kind: str = "file") -> None:
    path = Path(path)
    try:
        path.unlink()
    except FileNotFoundError:
        raise NotFound(kind, path) from None
    except OSError as e:
        raise IOFailure(path, "delete", e) from e
    logger.debug("Removed %s", path)
