"""Destination planning for mutated documents and their companions.

Output files mirror the source layout below the intermediate directory: a
source at ``dir/a/b.xml`` lands at ``<root>/dir/a/b.xml`` and an absolute
source keeps its full path minus the drive and root.  Segments such as ``..``
are stripped so no computed path can escape the output root.
"""

from __future__ import annotations

import os
from typing import List

from .errors import PathResolutionError


def _segments(path: str) -> List[str]:
    """Split a path into its named components, dropping root, ``.`` and ``..``."""

    _, tail = os.path.splitdrive(path)
    if os.altsep:
        tail = tail.replace(os.altsep, os.sep)
    return [p for p in tail.split(os.sep) if p not in ("", os.curdir, os.pardir)]


def mirror_path(output_root: str, source_path: str) -> str:
    """Destination for a primary document.

    :param output_root: The intermediate output directory.
    :param source_path: Path of the source document, absolute or relative.
    :returns: Path of the file under ``output_root``.
    :raises PathResolutionError: when ``source_path`` names no file.
    """

    parts = _segments(source_path)
    name = os.path.basename(source_path)
    if not parts or name in ("", os.curdir, os.pardir):
        raise PathResolutionError(source_path, "path does not name a file")
    return os.path.join(output_root, *parts)


def sibling_destination(dest_dir: str, source_dir: str, sibling_path: str) -> str:
    """Destination for a file found below a primary document's directory.

    The sibling keeps its position relative to ``source_dir`` so files in
    subfolders land in the matching subfolder of ``dest_dir``.

    :raises PathResolutionError: when the sibling cannot be expressed
        relative to ``source_dir``.
    """

    try:
        rel = os.path.relpath(sibling_path, source_dir)
    except ValueError as exc:
        raise PathResolutionError(sibling_path, str(exc)) from exc
    parts = _segments(rel)
    if not parts:
        raise PathResolutionError(sibling_path, f"not below '{source_dir}'")
    return os.path.join(dest_dir, *parts)


def prepare_destination(path: str) -> str:
    """Create the parent directory of ``path`` if needed and return ``path``."""

    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    return path
