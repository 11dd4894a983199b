"""Apply an XPath-selected set or delete to a single XML document.

The patcher parses the document with lxml, evaluates the compiled expression
and snapshots the matched nodes before touching the tree, so removing one
match can never change which nodes were selected.  Nodes are visited in
document order.
"""

from __future__ import annotations

import logging
from typing import List, Tuple

from lxml import etree

import config
from . import namespaces
from . import utils
from .errors import InvalidValueError, ParseError, XPathError
from .models import MutationSpec


class DocumentPatcher:
    """Load, mutate and save XML documents.

    One instance can be reused for every document of a run; it holds no
    state apart from its logger.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(__name__)

    def load(self, path: str) -> etree._ElementTree:
        """Parse ``path`` preserving whitespace, comments and the DOCTYPE.

        :raises ParseError: when the file is missing or not well-formed.
        """

        parser = etree.XMLParser(remove_blank_text=False)
        try:
            return etree.parse(path, parser)
        except (OSError, etree.XMLSyntaxError) as exc:
            raise ParseError(path, str(exc)) from exc

    def compile(self, spec: MutationSpec) -> etree.XPath:
        """Bind the namespace of ``spec`` and compile its expression.

        :raises XPathError: when the expression is malformed.
        """

        ns_map, expression = namespaces.bind(spec)
        try:
            return etree.XPath(expression, namespaces=ns_map)
        except etree.XPathError as exc:
            raise XPathError(spec.xpath, str(exc)) from exc

    def select(
        self,
        tree: etree._ElementTree,
        spec: MutationSpec,
        compiled: etree.XPath | None = None,
        path: str | None = None,
    ) -> List[object]:
        """Evaluate the expression and return a snapshot of the matches.

        :param tree: Parsed document.
        :param spec: Mutation being applied.
        :param compiled: Expression from :meth:`compile`, compiled on demand
            when omitted.
        :param path: Document path, used in error messages only.
        :raises XPathError: on evaluation errors or when the expression does
            not produce a node-set.
        """

        if compiled is None:
            compiled = self.compile(spec)
        try:
            result = compiled(tree)
        except etree.XPathError as exc:
            raise XPathError(spec.xpath, str(exc), path) from exc
        if not isinstance(result, list):
            raise XPathError(
                spec.xpath, f"expression returned {type(result).__name__}, not nodes", path
            )
        return list(result)

    def apply(self, nodes: List[object], spec: MutationSpec, path: str | None = None) -> None:
        """Set or delete every node in ``nodes``.

        Elements get their whole content replaced by the value; attributes,
        text nodes, comments and processing instructions get their value
        replaced.  With ``spec.delete`` each node is detached instead.

        :raises XPathError: for namespace nodes, computed strings or a
            deletion of the document element.
        :raises InvalidValueError: when the value cannot be stored in a
            selected comment or processing instruction.
        """

        # Elements whose tail text is itself selected; deleting them must not
        # move that text onto a neighbour.
        tail_owners = set()
        if spec.delete:
            tail_owners = {
                n.getparent()
                for n in nodes
                if isinstance(n, str) and getattr(n, "is_tail", False)
            }
        else:
            self._check_value(nodes, spec, path)
        for node in nodes:
            if isinstance(node, etree._Element):
                self._apply_node(node, spec, path, keep_tail=node not in tail_owners)
            elif isinstance(node, str) and hasattr(node, "getparent"):
                self._apply_string(node, spec, path)
            else:
                raise XPathError(spec.xpath, f"cannot modify selected item {node!r}", path)

    def _check_value(self, nodes: List[object], spec: MutationSpec, path: str | None) -> None:
        value = spec.replacement
        for node in nodes:
            if isinstance(node, etree._Comment):
                if "--" in value or value.endswith("-"):
                    raise InvalidValueError(value, "comments cannot contain '--' or end with '-'", path)
            elif isinstance(node, etree._ProcessingInstruction):
                if "?>" in value:
                    raise InvalidValueError(value, "processing instructions cannot contain '?>'", path)

    def _apply_node(
        self, node: etree._Element, spec: MutationSpec, path: str | None, keep_tail: bool = True
    ) -> None:
        if spec.delete:
            if not utils.remove_node(node, keep_tail):
                raise XPathError(spec.xpath, "cannot delete a node without a parent element", path)
        elif isinstance(node.tag, str):
            utils.replace_content(node, spec.replacement)
        else:
            # comments and processing instructions
            node.text = spec.replacement

    def _apply_string(self, node: str, spec: MutationSpec, path: str | None) -> None:
        owner = node.getparent()
        if owner is None:
            raise XPathError(spec.xpath, f"selected value {str(node)!r} is not part of the document", path)
        value = None if spec.delete else spec.replacement
        if node.is_attribute:
            if value is None:
                owner.attrib.pop(node.attrname, None)
            else:
                owner.set(node.attrname, value)
        elif node.is_tail:
            owner.tail = value
        elif node.is_text:
            owner.text = value
        else:
            raise XPathError(spec.xpath, f"selected value {str(node)!r} is not a node", path)

    def patch(
        self,
        path: str,
        spec: MutationSpec,
        compiled: etree.XPath | None = None,
    ) -> Tuple[etree._ElementTree, int]:
        """Load ``path`` and apply ``spec`` to it.

        :returns: ``(tree, match_count)``; the count is the number of nodes
            selected before any mutation.
        """

        self.logger.info("Updating Xml Document %s", path)
        tree = self.load(path)
        nodes = self.select(tree, spec, compiled, path)
        self.logger.info("%s node(s) selected for update.", len(nodes))
        self.apply(nodes, spec, path)
        return tree, len(nodes)

    def save(self, tree: etree._ElementTree, destination: str, source: str | None = None) -> str:
        """Write ``tree`` to ``destination``.

        The encoding declared by ``source`` is kept; top level comments and
        the DOCTYPE are written as parsed.
        """

        encoding = utils.detect_encoding(source) if source else config.DEFAULT_ENCODING
        tree.write(
            destination,
            encoding=encoding,
            xml_declaration=config.XML_DECLARATION,
        )
        self.logger.debug("Wrote %s", destination)
        return destination
