"""Logical path handling: normalization, priority lists and source lookup.

A request for ``/about`` may be satisfied by ``about.html``, ``about.md``,
``about/index.jinja`` and so on. The priority list fixes the order in which
those candidates are tried so that the served and compiled sites agree.
"""

import posixpath
from collections.abc import Iterable
from pathlib import Path, PurePosixPath
from urllib.parse import unquote

from slipway.core.types import URLPath

INDEX_TOKEN = "index"

# Precedence of renderable source extensions, earliest wins
SOURCE_EXTENSIONS: tuple[str, ...] = (".jinja", ".j2", ".md", ".markdown")


def normalize_url(raw: str) -> URLPath:
    """Canonicalize a request path.

    Drops the query string and fragment, percent-decodes, collapses ``.`` and
    ``..`` segments without climbing above the root, and appends the index
    token to empty or ``/``-terminated paths.

    Args:
        raw: Raw request path, e.g. "/docs/?page=2"

    Returns:
        Normalized path, e.g. "/docs/index"
    """
    path = raw.split("?", 1)[0].split("#", 1)[0]
    path = unquote(path).replace("\\", "/")

    segments: list[str] = []
    for segment in path.split("/"):
        if segment in ("", ".") or "\x00" in segment:
            continue
        if segment == "..":
            if segments:
                segments.pop()
            continue
        segments.append(segment)

    if not segments or path.endswith("/"):
        segments.append(INDEX_TOKEN)

    return URLPath("/" + "/".join(segments))


def build_priority_list(
    path: str,
    source_extensions: tuple[str, ...] = SOURCE_EXTENSIONS,
) -> tuple[str, ...]:
    """Build the ordered candidate source files for a normalized path.

    Order:
        1. the path itself
        2. for extensionless paths, the candidates of ``x.html`` (so
           ``/about`` and ``/about.html`` resolve alike)
        3. the path with each source extension appended
        4. for ``x.html`` each source extension in place of ``.html``
        5. ``x/index.html`` then ``x/index`` with each source extension

    Args:
        path: Normalized path (see normalize_url)
        source_extensions: Renderable extensions in precedence order

    Returns:
        Non-empty tuple of relative POSIX paths without duplicates
    """
    rel = path.strip("/") or INDEX_TOKEN
    stem, ext = posixpath.splitext(rel)

    candidates = [rel]
    if not ext:
        html = f"{rel}.html"
        candidates.append(html)
        candidates.extend(html + source_ext for source_ext in source_extensions)

    candidates.extend(rel + source_ext for source_ext in source_extensions)

    if ext == ".html":
        candidates.extend(stem + source_ext for source_ext in source_extensions)

    if posixpath.basename(rel) != INDEX_TOKEN:
        index = f"{rel}/{INDEX_TOKEN}"
        candidates.append(f"{index}.html")
        candidates.extend(index + source_ext for source_ext in source_extensions)

    return tuple(dict.fromkeys(candidates))


def output_targets(path: str) -> tuple[str, ...]:
    """Output files a normalized path may be answered with.

    ``/about`` stands for ``about`` or ``about.html``, and for the index page
    of an ``about`` directory. A source only answers a request if its output
    path is one of these, which keeps serving in line with compiling.

    Args:
        path: Normalized path (see normalize_url)

    Returns:
        Relative POSIX output paths
    """
    rel = path.strip("/") or INDEX_TOKEN
    targets = [rel]
    if not posixpath.splitext(rel)[1]:
        targets.append(f"{rel}.html")
    if posixpath.basename(rel) != INDEX_TOKEN:
        targets.append(f"{rel}/{INDEX_TOKEN}.html")
    return tuple(targets)


def find_first_file(root: Path, priority_list: Iterable[str]) -> Path | None:
    """Return the first candidate that exists as a regular file under root.

    Candidates that are absolute or climb out of root are skipped.

    Args:
        root: Public source directory
        priority_list: Candidates in precedence order

    Returns:
        Path to the matched file, or None when nothing matches
    """
    for candidate in priority_list:
        relative = PurePosixPath(candidate)
        if relative.is_absolute() or ".." in relative.parts:
            continue
        source = root.joinpath(*relative.parts)
        if source.is_file():
            return source
    return None
