"""
File system utilities for dlprotoc.

This module provides the safe file operations the cache relies on:
- Atomic writes (temp file in the same directory + rename)
- Path containment checks
- Guarded directory removal

Atomic writes are what make a shared cache directory safe for several build
processes at once: a reader either sees no file or a complete one.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

from dlprotoc.core.exceptions import FilesystemError

IS_WINDOWS = os.name == "nt"

EXECUTABLE_MODE = 0o755


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is relative to (under) parent directory.

    Example:
        >>> is_relative_to(Path("/home/user/project/file.txt"), Path("/home/user"))
        True
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def atomic_write(
    file_path: Union[str, Path],
    content: Union[str, bytes],
    mode: Optional[int] = None,
    encoding: str = "utf-8",
) -> Path:
    """
    Write file atomically using temp file + rename.

    The file is never observable in a partially-written state. If the write
    fails, the original file (if any) remains unchanged and the temporary
    file is removed.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        mode: Optional permission bits applied before the rename
        encoding: Text encoding (used only for string content)

    Returns:
        The path written

    Raises:
        OSError: If writing or renaming fails

    Example:
        >>> atomic_write('bin/protoc', payload, mode=0o755)
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Create temp file in same directory (ensures same filesystem)
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())

        if mode is not None and not IS_WINDOWS:
            os.chmod(temp_path, mode)

        # Atomic rename (replaces destination if it exists)
        os.replace(temp_path, file_path)

    except BaseException:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise

    return file_path


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree('~/.dlprotoc/protoc-31.0-linux-x86_64', require_prefix='~/.dlprotoc')
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if path == require_prefix or not is_relative_to(path, require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        shutil.rmtree(path)
    except OSError as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e
