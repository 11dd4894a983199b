"""Namespace binding for XPath evaluation.

lxml refuses an empty prefix in the ``namespaces`` mapping because XPath 1.0
has no default element namespace.  When a namespace is supplied without a
prefix the expression is rewritten instead: every unprefixed element name test
is qualified with an internal alias that is bound to the namespace.  Attribute
names, function names, node type tests and axis names are left untouched.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from .models import MutationSpec

DEFAULT_ALIAS = "_default"

_TOKEN = re.compile(
    r"""
    (?P<literal>"[^"]*"|'[^']*')
  | (?P<number>\d+(?:\.\d*)?|\.\d+)
  | (?P<name>[^\W\d][\w.\-]*(?::(?:[^\W\d][\w.\-]*|\*))?)
  | (?P<op>::|//|\.\.|!=|<=|>=|[()\[\]@,|+\-=<>/*.$])
  | (?P<space>\s+)
  | (?P<other>.)
    """,
    re.VERBOSE,
)

_OPERATORS = {"/", "//", "|", "+", "-", "=", "!=", "<", "<=", ">", ">="}
# Tokens after which a name or ``*`` is never an operator.
_OPERAND_STARTS = {"@", "::", "(", "[", ","}


def _operator_position(prev: Optional[Tuple[str, bool]]) -> bool:
    """True when the next name or ``*`` must be read as an operator."""

    return prev is not None and prev[0] not in _OPERAND_STARTS and not prev[1]


def _next_significant(tokens: List[Tuple[str, str]], index: int) -> str:
    for kind, text in tokens[index + 1:]:
        if kind != "space":
            return text
    return ""


def qualify_xpath(xpath: str, alias: str) -> str:
    """Prefix unprefixed element name tests in ``xpath`` with ``alias``.

    >>> qualify_xpath("/a/b[@id='x']/text()", "n")
    "/n:a/n:b[@id='x']/text()"
    """

    tokens = [(m.lastgroup, m.group()) for m in _TOKEN.finditer(xpath)]
    out: List[str] = []
    prev: Optional[Tuple[str, bool]] = None
    axis = ""
    for i, (kind, text) in enumerate(tokens):
        if kind == "space":
            out.append(text)
            continue
        is_operator = False
        if kind == "op":
            if text == "*":
                is_operator = _operator_position(prev)
            else:
                is_operator = text in _OPERATORS
            if text == "::":
                axis = prev[0] if prev else ""
        elif kind == "name":
            if prev is not None and prev[0] == "$":
                pass
            elif _operator_position(prev):
                is_operator = True
            elif ":" in text or _next_significant(tokens, i) in ("(", "::"):
                pass
            elif prev is not None and prev[0] == "@":
                pass
            elif prev is not None and prev[0] == "::" and axis in ("attribute", "namespace"):
                pass
            else:
                out.append(f"{alias}:{text}")
                prev = (text, False)
                continue
        out.append(text)
        prev = (text, is_operator)
    return "".join(out)


def bind(spec: MutationSpec) -> Tuple[Dict[str, str], str]:
    """Namespace mapping and effective expression for ``spec``.

    The effective prefix is resolved locally; ``spec`` is never modified.

    :returns: ``(namespaces, xpath)`` ready for :class:`lxml.etree.XPath`.
    """

    if not spec.namespace:
        return {}, spec.xpath
    prefix = spec.prefix or ""
    if prefix:
        return {prefix: spec.namespace}, spec.xpath
    return {DEFAULT_ALIAS: spec.namespace}, qualify_xpath(spec.xpath, DEFAULT_ALIAS)
