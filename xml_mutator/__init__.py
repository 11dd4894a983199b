"""Public entry points for :mod:`xml_mutator`.

Build scripts normally only need :func:`~xml_mutator.mutator.modify_xml`.
The component classes are re-exported for callers that want to drive a run
step by step or reuse the patcher on its own.
"""

from .errors import (
    InvalidValueError,
    MutatorError,
    ParseError,
    PathResolutionError,
    SiblingCopyError,
    XPathError,
)
from .models import InputFile, MutationSpec, OutputDescriptor, SiblingResult
from .mutator import XmlMutator, modify_xml
from .patcher import DocumentPatcher
from .siblings import SiblingMaterializer

__all__ = [
    "DocumentPatcher",
    "InputFile",
    "InvalidValueError",
    "MutationSpec",
    "MutatorError",
    "OutputDescriptor",
    "ParseError",
    "PathResolutionError",
    "SiblingCopyError",
    "SiblingMaterializer",
    "SiblingResult",
    "XPathError",
    "XmlMutator",
    "modify_xml",
]
