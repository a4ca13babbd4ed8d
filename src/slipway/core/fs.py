"""Filesystem helpers used by the compile pipeline.

Blocking calls run in worker threads so many writes can be in flight.
"""

import asyncio
import os
import shutil
from collections.abc import Callable
from pathlib import Path


def list_files(root: Path, ignore: Callable[[str], bool] | None = None) -> list[str]:
    """List every file under root.

    Args:
        root: Directory to walk
        ignore: Predicate over relative POSIX paths; ignored directories
                are not descended into

    Returns:
        Sorted relative POSIX paths of regular files
    """
    results: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        base = Path(dirpath).relative_to(root)
        if ignore is not None:
            dirnames[:] = [d for d in dirnames if not ignore((base / d).as_posix())]
        for filename in filenames:
            relative = (base / filename).as_posix()
            if ignore is not None and ignore(relative):
                continue
            results.append(relative)
    return sorted(results)


def prime(output_path: Path, *, ignore: Path) -> None:
    """Create the output directory and clear previous build artifacts.

    Entries that are, or contain, the ignored path are left in place.

    Args:
        output_path: Build output directory
        ignore: Path that must survive (the project root)
    """
    output_path.mkdir(parents=True, exist_ok=True)
    for entry in output_path.iterdir():
        if entry == ignore or entry in ignore.parents:
            continue
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()


async def write_file(path: Path, body: bytes) -> None:
    """Write bytes to path, creating parent directories."""
    await asyncio.to_thread(_write_file, path, body)


async def copy_file(source: Path, destination: Path) -> None:
    """Copy a file byte for byte, creating parent directories."""
    await asyncio.to_thread(_copy_file, source, destination)


def _write_file(path: Path, body: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(body)


def _copy_file(source: Path, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, destination)
