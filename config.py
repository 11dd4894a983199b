"""Library configuration.

The mutator is configurable via an external ``TOML`` file so build scripts can
alter defaults without patching the code.  ``XML_MUTATOR_CONFIG`` is read
first, which lets a build farm point every job at a central config file, and
a project ``config.toml`` next to this module is used when the variable is
unset.
"""

from __future__ import annotations

import os
import pytoml

_CONFIG_PATH = os.environ.get(
    "XML_MUTATOR_CONFIG",
    os.path.join(os.path.dirname(__file__), "config.toml"),
)

if os.path.exists(_CONFIG_PATH):
    with open(_CONFIG_PATH, "r", encoding="utf-8") as _cfg:
        _CONF = pytoml.load(_cfg)
else:
    _CONF = {}

# Default log level used by :class:`~xml_mutator.mutator.XmlMutator`.
LOG_LEVEL: str = "INFO"

# Directory receiving one timestamped log file per run.  An empty value turns
# file logging off.
LOG_DIR: str = "logs"

# Written documents always carry an ``<?xml ...?>`` header unless disabled.
XML_DECLARATION: bool = True

# Used when a source document does not declare its encoding.
DEFAULT_ENCODING: str = "utf-8"

# Relocate the files found next to each primary XML document.
COPY_SIBLINGS: bool = True

# Override with TOML values if provided
LOG_LEVEL = str(_CONF.get("LOG_LEVEL", LOG_LEVEL)).upper()
LOG_DIR = _CONF.get("LOG_DIR", LOG_DIR)
XML_DECLARATION = bool(_CONF.get("XML_DECLARATION", XML_DECLARATION))
DEFAULT_ENCODING = _CONF.get("DEFAULT_ENCODING", DEFAULT_ENCODING)
COPY_SIBLINGS = bool(_CONF.get("COPY_SIBLINGS", COPY_SIBLINGS))
