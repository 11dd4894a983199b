"""Value objects passed between the mutator components."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import SiblingCopyError


@dataclass(frozen=True)
class InputFile:
    """A primary XML document and the tag to carry over to its output."""

    path: str
    tag: str = ""


@dataclass(frozen=True)
class MutationSpec:
    """What to select and what to do with it.

    One spec applies to every input of a run.  With ``delete`` set the
    ``value`` is ignored and matched nodes are removed from their parent;
    otherwise every matched node receives ``value`` (``None`` writes an empty
    string).  ``prefix`` is only meaningful together with ``namespace``; when
    it is left unset the namespace becomes the default for unprefixed element
    names in ``xpath``.
    """

    xpath: str
    namespace: str | None = None
    prefix: str | None = None
    value: str | None = None
    delete: bool = False

    @property
    def replacement(self) -> str:
        return "" if self.value is None else self.value


@dataclass(frozen=True)
class OutputDescriptor:
    """Location of a written primary document plus its passthrough tag."""

    path: str
    tag: str


@dataclass
class SiblingResult:
    """Outcome of relocating one companion file.

    Failures are recorded rather than raised so one locked file cannot abort
    the batch.
    """

    source: str
    destination: str
    patched: bool = False
    error: SiblingCopyError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __repr__(self) -> str:
        state = "ok" if self.ok else f"failed: {self.error.reason}"
        return f"SiblingResult({self.source} -> {self.destination}, {state})"
