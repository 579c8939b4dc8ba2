# atomspector/__init__.py
# !/usr/bin/env python3

__version__ = "0.1.0"

from ._exceptions import AtomspectorError, ProtocolError, UnsupportedFormatError
from .format_handlers.mp4 import (
    AtomCatalog,
    AtomEvent,
    AtomReader,
    AtomState,
    AtomType,
    AtomTypeFlags,
    DEFAULT_CATALOG,
)
from .inspector import AtomInspector
from .cli import atoms, get
