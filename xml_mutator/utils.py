"""Small utilities used across the mutator.

These helpers are kept independent of any class so they are easy to test in
isolation and can be reused from build scripts.  They cover the low level lxml
tree edits and the filesystem chores (read-only flags, tree removal) that the
components repeat.
"""

from __future__ import annotations

import os
import re
import shutil
import stat

from lxml import etree

import config


def detect_encoding(xml_path: str) -> str:
    """Detect the declared XML encoding.

    Reading only the header keeps the operation fast while covering typical
    declarations.  Documents without a declaration fall back to
    ``config.DEFAULT_ENCODING``.

    :param xml_path: Path to the XML file.
    :returns: The encoding string.
    """

    with open(xml_path, "rb") as f:
        header = f.read(200).decode("ascii", errors="ignore")
    match = re.search(r"encoding=[\"']([^\"']+)[\"']", header)
    return match.group(1) if match else config.DEFAULT_ENCODING


def replace_content(elem: etree._Element, text: str) -> None:
    """Replace everything inside ``elem`` with a single text value.

    Child elements, comments and their tails are dropped.  Attributes of
    ``elem`` are left alone.  The value is stored literally, so markup in
    ``text`` ends up escaped in the output.

    :param elem: Element to modify in place.
    :param text: New text content.
    """

    for child in list(elem):
        elem.remove(child)
    elem.text = text


def remove_node(node: etree._Element, keep_tail: bool = True) -> bool:
    """Detach ``node`` from its parent while keeping the surrounding text.

    lxml stores the text following an element as its ``tail`` and discards it
    together with the element.  The tail is moved to the previous sibling (or
    the parent's leading text) first so neighbouring content is unchanged.

    :param node: Element, comment or processing instruction to remove.
    :param keep_tail: Drop the tail with the node when ``False``.
    :returns: ``False`` when the node has no parent element.
    """

    parent = node.getparent()
    if parent is None:
        return False
    if keep_tail and node.tail:
        previous = node.getprevious()
        if previous is not None:
            previous.tail = (previous.tail or "") + node.tail
        else:
            parent.text = (parent.text or "") + node.tail
    parent.remove(node)
    return True


def clear_readonly(path: str) -> None:
    """Make ``path`` writable for its owner."""

    mode = os.stat(path).st_mode
    if not mode & stat.S_IWRITE:
        os.chmod(path, mode | stat.S_IWRITE)


def clear_readonly_tree(root: str) -> int:
    """Clear the read-only flag on every file below ``root``.

    :returns: Number of files visited.
    """

    count = 0
    for dirpath, _, filenames in os.walk(root):
        for name in filenames:
            clear_readonly(os.path.join(dirpath, name))
            count += 1
    return count


def remove_tree(root: str) -> bool:
    """Delete a previous output directory.

    Read-only files are made writable first; platforms that honour the flag
    on deletion would otherwise refuse to remove them.

    :returns: ``True`` if something was removed.
    """

    if not os.path.isdir(root):
        return False
    clear_readonly_tree(root)
    shutil.rmtree(root)
    return True
