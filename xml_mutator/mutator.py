"""Build step that rewrites XML documents into an intermediate directory.

:class:`XmlMutator` drives a run: it clears the previous output, patches
every primary document, writes it to its mirrored location and relocates the
companion files found next to it.  :func:`modify_xml` is the call a build
script makes; it mirrors the parameters of the task it replaces.
"""

from __future__ import annotations

import datetime
import logging
import os
from typing import Iterable, List, Sequence, Set, Tuple, Union

import config
from . import planner
from . import utils
from .errors import MutatorError
from .models import InputFile, MutationSpec, OutputDescriptor, SiblingResult
from .patcher import DocumentPatcher
from .siblings import SiblingMaterializer, name_key

XmlFileArg = Union[InputFile, Tuple[str, str], str]


class XmlMutator:
    """High level workflow for one mutation run.

    The run is strictly sequential.  Any failure on a primary document aborts
    it and leaves the output written so far on disk; failures while copying
    companion files are logged and collected in :attr:`sibling_results`.
    """

    def __init__(
        self,
        intermediate_path: str,
        include_siblings: bool | None = None,
    ) -> None:
        self.intermediate_path = intermediate_path
        self.include_siblings = (
            config.COPY_SIBLINGS if include_siblings is None else include_siblings
        )
        self.logger = logging.getLogger("XmlMutator")
        self.logger.setLevel(getattr(logging, config.LOG_LEVEL))
        self.patcher = DocumentPatcher(self.logger)
        # the output and the run logs may live inside a source tree
        exclude = [intermediate_path]
        if config.LOG_DIR:
            exclude.append(config.LOG_DIR)
        self.siblings = SiblingMaterializer(self.patcher, self.logger, exclude=exclude)
        self.sibling_results: List[SiblingResult] = []

    def _init_log(self) -> str | None:
        """Attach a timestamped log file for this run.

        Handlers left over from an earlier run are dropped first so messages
        of consecutive runs never interleave.

        :returns: The log file path, or ``None`` when ``config.LOG_DIR`` is
            empty.
        """

        self._close_log()
        if not config.LOG_DIR:
            return None
        os.makedirs(config.LOG_DIR, exist_ok=True)
        ts = datetime.datetime.now().strftime("%Y%m%d%H%M%S%f")
        log_path = os.path.join(config.LOG_DIR, f"xml_mutator_{ts}.log")
        fh = logging.FileHandler(log_path, encoding="utf-8")
        formatter = logging.Formatter("%(asctime)s %(levelname)s:%(message)s")
        fh.setFormatter(formatter)
        self.logger.addHandler(fh)
        return log_path

    def _close_log(self) -> None:
        """Detach and close the file handlers of this logger."""

        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

    def _reset_output(self) -> None:
        """Remove the output of a previous run, read-only files included."""

        if utils.remove_tree(self.intermediate_path):
            self.logger.info("Removed previous output: %s", self.intermediate_path)

    def execute(
        self, xml_files: Sequence[InputFile], spec: MutationSpec
    ) -> List[OutputDescriptor]:
        """Patch every input and return one descriptor per input, in order.

        The run's log file is closed before returning, also on failure.

        :param xml_files: Primary documents with their passthrough tags.
        :param spec: Mutation applied to every document.
        :returns: Descriptors pointing at the written documents.
        :raises MutatorError: when a primary document cannot be processed.
        """

        self._init_log()
        try:
            return self._run(xml_files, spec)
        except MutatorError as exc:
            self.logger.error("%s", exc)
            raise
        finally:
            self._close_log()

    def _run(
        self, xml_files: Sequence[InputFile], spec: MutationSpec
    ) -> List[OutputDescriptor]:
        self.logger.info("Start execute: %s file(s) -> %s", len(xml_files), self.intermediate_path)
        self._reset_output()
        self.sibling_results = []

        primary_names: Set[str] = {name_key(f.path) for f in xml_files}
        compiled = self.patcher.compile(spec)

        outputs: List[OutputDescriptor] = []
        for xml_file in xml_files:
            destination = planner.mirror_path(self.intermediate_path, xml_file.path)
            tree, _ = self.patcher.patch(xml_file.path, spec, compiled)
            self.patcher.save(tree, planner.prepare_destination(destination), xml_file.path)
            self.logger.info("Wrote: %s", destination)
            if self.include_siblings:
                self.sibling_results.extend(
                    self.siblings.materialize(
                        xml_file.path,
                        os.path.dirname(destination),
                        primary_names,
                        spec,
                        compiled,
                    )
                )
            outputs.append(OutputDescriptor(destination, xml_file.tag))

        if spec.delete:
            self.logger.info("XmlUpdate Deleted: '%s'", spec.xpath)
        else:
            self.logger.info("XmlUpdate Wrote: '%s'", spec.replacement)
        self.logger.info("End execute")
        return outputs


def _as_input(item: XmlFileArg) -> InputFile:
    if isinstance(item, InputFile):
        return item
    if isinstance(item, str):
        return InputFile(item)
    path, tag = item
    return InputFile(path, tag or "")


def modify_xml(
    xml_files: Iterable[XmlFileArg],
    xpath: str,
    intermediate_path: str,
    value: str | None = None,
    delete: bool = False,
    namespace: str | None = None,
    prefix: str | None = None,
    include_siblings: bool | None = None,
) -> List[OutputDescriptor]:
    """Rewrite ``xml_files`` into ``intermediate_path``.

    Every node selected by ``xpath`` is set to ``value`` or, with ``delete``,
    removed.  ``namespace`` binds ``prefix`` for the expression; without a
    prefix it becomes the default namespace of unprefixed element names.

    :param xml_files: :class:`InputFile` objects, ``(path, tag)`` pairs or
        bare paths.
    :returns: One :class:`OutputDescriptor` per input, in input order.
    :raises MutatorError: naming the file and the operation that failed.
    """

    inputs = [_as_input(item) for item in xml_files]
    spec = MutationSpec(
        xpath=xpath,
        namespace=namespace,
        prefix=prefix,
        value=value,
        delete=delete,
    )
    return XmlMutator(intermediate_path, include_siblings).execute(inputs, spec)
