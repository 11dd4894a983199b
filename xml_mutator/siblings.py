"""Relocate the files that live next to a primary document.

Templates and config sets usually ship with companion files (icons, readmes,
other XML documents).  Everything below the primary document's directory is
mirrored into its destination directory.  A companion that is itself one of
the run's primary inputs receives the same XPath mutation; anything else is
copied verbatim.
"""

from __future__ import annotations

import logging
import os
import shutil
from typing import Iterable, Iterator, List, Set

from lxml import etree

from . import planner
from . import utils
from .errors import PathResolutionError, SiblingCopyError
from .models import MutationSpec, SiblingResult
from .patcher import DocumentPatcher


def name_key(path: str) -> str:
    """Key used to compare a file name against the primary input names."""

    return os.path.normcase(os.path.basename(path))


class SiblingMaterializer:
    """Copy or patch every file under a primary document's directory.

    :param patcher: Patcher shared with the primary documents.
    :param logger: Logger for progress and copy failures.
    :param exclude: Directories never descended into, typically the output
        root when it lives inside a source tree.
    """

    def __init__(
        self,
        patcher: DocumentPatcher,
        logger: logging.Logger | None = None,
        exclude: Iterable[str] = (),
    ) -> None:
        self.patcher = patcher
        self.logger = logger or logging.getLogger(__name__)
        self.exclude = {os.path.normcase(os.path.abspath(p)) for p in exclude}

    def _walk(self, source_dir: str) -> Iterator[str]:
        """Yield files below ``source_dir`` in a stable order."""

        for dirpath, dirnames, filenames in os.walk(source_dir):
            dirnames[:] = sorted(
                d
                for d in dirnames
                if os.path.normcase(os.path.abspath(os.path.join(dirpath, d))) not in self.exclude
            )
            for name in sorted(filenames):
                yield os.path.join(dirpath, name)

    def _copy(self, source: str, destination: str) -> SiblingResult:
        """Copy one file and clear the read-only flag on the copy.

        Failures are returned on the result instead of raised.
        """

        try:
            planner.prepare_destination(destination)
            shutil.copy2(source, destination)
            utils.clear_readonly(destination)
        except OSError as exc:
            error = SiblingCopyError(source, destination, str(exc))
            self.logger.warning("%s", error)
            return SiblingResult(source, destination, error=error)
        return SiblingResult(source, destination)

    def materialize(
        self,
        primary_path: str,
        dest_dir: str,
        primary_names: Set[str],
        spec: MutationSpec,
        compiled: etree.XPath | None = None,
    ) -> List[SiblingResult]:
        """Mirror the companions of ``primary_path`` into ``dest_dir``.

        :param primary_path: The primary document; it is skipped itself.
        :param dest_dir: Destination directory of the primary document.
        :param primary_names: :func:`name_key` of every primary input.
        :param spec: Mutation applied to companions that are primary inputs.
        :param compiled: Pre-compiled expression for ``spec``.
        :returns: One result per companion file, in walk order.
        """

        source_dir = os.path.dirname(primary_path) or os.curdir
        _, extension = os.path.splitext(name_key(primary_path))
        primary_abs = os.path.normcase(os.path.abspath(primary_path))
        results: List[SiblingResult] = []
        for source in self._walk(source_dir):
            if os.path.normcase(os.path.abspath(source)) == primary_abs:
                continue
            try:
                destination = planner.sibling_destination(dest_dir, source_dir, source)
            except PathResolutionError as exc:
                error = SiblingCopyError(source, dest_dir, exc.reason)
                self.logger.warning("%s", error)
                results.append(SiblingResult(source, dest_dir, error=error))
                continue
            key = name_key(source)
            if os.path.splitext(key)[1] == extension and key in primary_names:
                tree, _ = self.patcher.patch(source, spec, compiled)
                self.patcher.save(tree, planner.prepare_destination(destination), source)
                results.append(SiblingResult(source, destination, patched=True))
            else:
                results.append(self._copy(source, destination))
        copied = sum(1 for r in results if r.ok and not r.patched)
        failed = sum(1 for r in results if not r.ok)
        self.logger.info(
            "Companions of %s: %s copied, %s patched, %s failed",
            primary_path,
            copied,
            len(results) - copied - failed,
            failed,
        )
        return results
