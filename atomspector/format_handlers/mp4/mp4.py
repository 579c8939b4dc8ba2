# atomspector/format_handlers/mp4/mp4.py
# !/usr/bin/env python3

import logging

from typing import BinaryIO, FrozenSet, Iterator, Optional, Tuple
from atomspector._exceptions import ProtocolError
from .mp4_atoms import (
    AtomCatalog,
    AtomEvent,
    AtomTypeFlags,
    DEFAULT_CATALOG,
    ILST_TYPE_NAME,
    META_TYPE_NAME,
    MOOV_TYPE_NAME,
    SYNOPSIS_TYPE_NAME,
    TITLE_TYPE_NAME,
    UDTA_TYPE_NAME,
)
from .mp4_utils import _skip, read_atom_header

logger = logging.getLogger(__name__)

# Containers that lead from the root to the iTunes metadata items.
META_CONTAINER_CHAIN: FrozenSet[str] = frozenset(
    {MOOV_TYPE_NAME, UDTA_TYPE_NAME, META_TYPE_NAME, ILST_TYPE_NAME}
)

# Size, type and locale prefix in front of the text of a tag item.
LEAF_TAG_HEADER_SIZE = 16

# The 4 bytes of version/flags in front of the children of a SKIPPER container.
SKIPPER_PREFIX_SIZE = 4


class AtomReader:
    """
    Walks the atom tree of an MP4/QuickTime stream as a forward-only sequence
    of AtomEvent objects.

    Every atom is offered to the caller before the reader acts on it. While
    the event is current the caller may consume it with
    get_current_atom_string_data() or skip_current_atom(); otherwise the
    reader dives into containers and skips everything else on its own. Each
    container the reader dives into is closed by a CONTAINER_END event.
    """

    def __init__(self, stream: BinaryIO, catalog: AtomCatalog = DEFAULT_CATALOG):
        self.stream = stream
        self.catalog = catalog
        self.current_atom: Optional[AtomEvent] = None

    def parse_atoms(self, budget: int = -1) -> Iterator[AtomEvent]:
        """
        Yields the atoms found in the next `budget` bytes of the stream.
        A budget of -1 reads until the end of the stream.
        """
        offset = 0
        while budget < 0 or offset < budget:
            atom = read_atom_header(self.stream, self.catalog)
            if atom is None:
                return
            self.current_atom = atom
            yield atom

            offset += atom.size
            if atom.consumed:
                continue

            if atom.is_container:
                yield from self._dive(atom)
            else:
                atom.consume()
                _skip(self.stream, atom.data_size)

        if offset > budget >= 0:
            logger.debug(
                f"DEBUG_TRAVERSAL: Children overran their container by {offset - budget} bytes."
            )

    def _dive(self, atom: AtomEvent) -> Iterator[AtomEvent]:
        child_budget = atom.data_size
        if AtomTypeFlags.SKIPPER in atom.flags:
            prefix_size = min(SKIPPER_PREFIX_SIZE, child_budget)
            _skip(self.stream, prefix_size)
            child_budget -= prefix_size

        yield from self.parse_atoms(child_budget)

        atom.consume()
        atom_end = atom.end_marker()
        self.current_atom = atom_end
        yield atom_end

    def iter_atoms(self) -> Iterator[Tuple[int, AtomEvent]]:
        """Yields (depth, atom) pairs for the whole stream."""
        depth = 0
        for atom in self.parse_atoms():
            if atom.is_container_end:
                depth -= 1
                yield depth, atom
            else:
                yield depth, atom
                if atom.is_container:
                    depth += 1

    def _check_current_atom(self) -> AtomEvent:
        atom = self.current_atom
        if atom is None:
            raise ProtocolError("No current atom.")
        if atom.consumed:
            raise ProtocolError(f"Current atom '{atom.name}' already consumed.")
        return atom

    def get_current_atom_string_data(self) -> str:
        """
        Reads the text of the current tag item and consumes it.

        The first 16 bytes of the payload are the item's data header and are
        skipped; the rest is decoded as UTF-8.
        """
        atom = self._check_current_atom()
        if atom.is_container or atom.is_container_end:
            raise ProtocolError(f"Cannot get data for container '{atom.name}'.")
        atom.consume()

        # a tag shorter than its data header ends at the atom boundary
        _skip(self.stream, min(LEAF_TAG_HEADER_SIZE, atom.data_size))
        data_len = max(atom.data_size - LEAF_TAG_HEADER_SIZE, 0)
        data = self.stream.read(data_len)
        if len(data) < data_len:
            logger.debug(
                f"DEBUG_READ: Short read for '{atom.name}', wanted {data_len} bytes, got {len(data)}."
            )
        return data.decode("utf-8", errors="replace")

    def skip_current_atom(self):
        """Skips the payload of the current atom and consumes it."""
        atom = self._check_current_atom()
        atom.consume()
        if atom.is_container_end:
            return  # nothing to skip for the end marker
        _skip(self.stream, atom.data_size)

    def get_meta_atom_value(self, atom_type_name: str) -> Optional[str]:
        """
        Returns the text of the first `atom_type_name` atom, or None if not found.

        Only the moov/udta/meta/ilst chain is searched. Other containers are
        skipped unread, and the search stops at the first end of a chain
        container, so items stored anywhere else are never found.
        """
        for atom in self.parse_atoms():
            if atom.name == atom_type_name:
                return self.get_current_atom_string_data()
            if atom.is_container:
                if atom.name not in META_CONTAINER_CHAIN:
                    self.skip_current_atom()
            elif atom.is_container_end:
                if atom.name in META_CONTAINER_CHAIN:
                    logger.debug(
                        f"DEBUG_SEARCH: {atom_type_name!r} not found before end of '{atom.name}'."
                    )
                    break
        return None

    def get_title(self) -> Optional[str]:
        return self.get_meta_atom_value(TITLE_TYPE_NAME)

    def get_synopsis(self) -> Optional[str]:
        return self.get_meta_atom_value(SYNOPSIS_TYPE_NAME)
