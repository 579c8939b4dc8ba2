# atomspector/format_handlers/mp4/__init__.py
# !/usr/bin/env python3

from .mp4 import AtomReader
from .mp4_atoms import (
    AtomCatalog,
    AtomEvent,
    AtomState,
    AtomType,
    AtomTypeFlags,
    DEFAULT_CATALOG,
)
