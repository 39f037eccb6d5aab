"""
Domain list persistence.

Domain lists are plain text files, one domain per line, sorted when written.
Writes go to a temporary file in the target's directory which then replaces
the target in one rename, so readers and crashes only ever see the old or the
new complete list.
"""

import os
import tempfile
from pathlib import Path
from typing import Iterable, Union

from domain_classifier.exceptions import PersistenceError

PathLike = Union[str, os.PathLike]


def load_domain_list(path: PathLike) -> list[str]:
    """
    Read a domain list file.

    Surrounding whitespace is stripped from each line and blank lines are
    skipped. A missing file is an empty list. Bytes that are not valid UTF-8
    are kept as surrogate escapes so the entry survives being stored again.

    Args:
        path: File to read

    Returns:
        Domains in file order

    Raises:
        PersistenceError: If the file exists but cannot be read
    """
    file_path = Path(path)
    if not file_path.exists():
        return []

    try:
        with open(file_path, "r", encoding="utf-8", errors="surrogateescape") as f:
            return [line.strip() for line in f if line.strip()]
    except OSError as e:
        raise PersistenceError(
            code="io_error",
            message=f"Failed to read domain list: {e}",
            details={"file_path": str(file_path)},
        )


def store_domain_list(path: PathLike, names: Iterable[str]) -> None:
    """
    Atomically replace a domain list file.

    Names are sorted lexicographically and written one per line with the
    platform line separator. On failure the previous file content is left
    untouched and the temporary file removed.

    Args:
        path: File to write
        names: Domains to store

    Raises:
        PersistenceError: If the file cannot be written or replaced
    """
    file_path = Path(path)
    content = "".join(f"{name}\n" for name in sorted(names))

    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(file_path.parent), prefix=f".{file_path.name}.", suffix=".tmp"
        )
    except OSError as e:
        raise PersistenceError(
            code="io_error",
            message=f"Failed to create temporary domain list: {e}",
            details={"file_path": str(file_path)},
        )

    try:
        # Text mode translates "\n" to the platform line separator
        with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        _replace(tmp_path, file_path)
    except (OSError, UnicodeEncodeError) as e:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise PersistenceError(
            code="io_error",
            message=f"Failed to store domain list: {e}",
            details={"file_path": str(file_path), "tmp_path": tmp_path},
        )


def _replace(tmp_path: str, file_path: Path) -> None:
    try:
        os.replace(tmp_path, file_path)
    except PermissionError:
        # Some platforms refuse to rename over an existing (or open) file
        if not file_path.exists():
            raise
        os.remove(file_path)
        os.replace(tmp_path, file_path)
