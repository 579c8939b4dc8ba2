# atomspector/inspector.py
# !/usr/bin/env python3

import os
import logging

from contextlib import contextmanager
from typing import Any, BinaryIO, Dict, Iterator, List, Optional

from .format_handlers.mp4.mp4 import AtomReader
from .format_handlers.mp4.mp4_atoms import (
    AtomCatalog,
    DEFAULT_CATALOG,
    SYNOPSIS_TYPE_NAME,
    TITLE_TYPE_NAME,
)
from .sources.http_stream import PartialHttpStream

logger = logging.getLogger(__name__)

# Tags whose text is included in the atom listing.
LISTED_TEXT_TAGS = (TITLE_TYPE_NAME, SYNOPSIS_TYPE_NAME)


def is_remote(source_path: str) -> bool:
    return source_path.startswith(("http://", "https://"))


class AtomInspector:
    def __init__(
        self,
        source_path: str,
        timeout: float = 10,
        catalog: AtomCatalog = DEFAULT_CATALOG,
    ):
        if not is_remote(source_path) and not os.path.exists(source_path):
            raise FileNotFoundError(f"File not found at '{source_path}'")
        self.source_path = source_path
        self.timeout = timeout
        self.catalog = catalog
        self.http_requests_count: Optional[int] = None

    @contextmanager
    def _open_source(self) -> Iterator[BinaryIO]:
        """Opens the local file or the remote range stream."""
        if is_remote(self.source_path):
            logger.info(f"Reading remote source '{self.source_path}' with range requests.")
            stream = PartialHttpStream(self.source_path, timeout=self.timeout)
            try:
                yield stream
            finally:
                self.http_requests_count = stream.http_requests_count
                logger.info(f"#http requests: {stream.http_requests_count}")
                stream.close()
        else:
            logger.info(f"Reading local file '{self.source_path}'.")
            with open(self.source_path, "rb") as f:
                yield f

    def list_atoms(self) -> List[Dict[str, Any]]:
        """
        Walks every atom of the source and returns one entry per event,
        container ends included. Title and synopsis entries carry their text.
        """
        atoms: List[Dict[str, Any]] = []
        with self._open_source() as f:
            reader = AtomReader(f, self.catalog)
            for depth, atom in reader.iter_atoms():
                entry: Dict[str, Any] = {
                    "name": atom.name,
                    "flags": atom.flags.describe(),
                    "size": atom.size,
                    "data_size": atom.data_size,
                    "depth": depth,
                }
                if atom.name in LISTED_TEXT_TAGS and not (
                    atom.is_container or atom.is_container_end
                ):
                    entry["value"] = reader.get_current_atom_string_data()
                atoms.append(entry)
        return atoms

    def get_tag(self, atom_type_name: str) -> Optional[str]:
        """Returns the text of the given metadata tag, or None if it is not present."""
        with self._open_source() as f:
            return AtomReader(f, self.catalog).get_meta_atom_value(atom_type_name)
