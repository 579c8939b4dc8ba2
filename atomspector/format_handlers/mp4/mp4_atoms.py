# atomspector/format_handlers/mp4/mp4_atoms.py
# !/usr/bin/env python3

import enum

from collections.abc import Mapping
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, NamedTuple

MOOV_TYPE_NAME = "moov"
UDTA_TYPE_NAME = "udta"
META_TYPE_NAME = "meta"
ILST_TYPE_NAME = "ilst"

# iTunes style tag items, see ffmpeg libavformat/movenc.c mov_write_ilst_tag()
TITLE_TYPE_NAME = "\xa9nam"
SYNOPSIS_TYPE_NAME = "ldes"


class AtomTypeFlags(enum.IntFlag):
    """Flags describing how an atom type is traversed."""

    NONE = 0
    # Holds child atoms.
    CONTAINER = 1
    # Container whose payload starts with 4 bytes (version/flags) before the children.
    SKIPPER = 2
    # A real "tag" with data.
    TAGITEM = 4
    # Datum is 8 bytes (2 big-endian uint32).
    NOVERN = 8
    # Datum is a "mean", "name", "data" triplet.
    XTAGITEM = 16
    # Synthetic marker emitted when a container's children are exhausted.
    CONTAINER_END = 32

    def describe(self) -> str:
        """Returns the set flag names joined by '|', or 'NONE'."""
        names = [
            member.name
            for member in AtomTypeFlags
            if member is not AtomTypeFlags.NONE and member in self
        ]
        return "|".join(names) if names else "NONE"


class AtomType(NamedTuple):
    """A registered atom type."""

    name: str
    flags: AtomTypeFlags


class AtomCatalog(Mapping):
    """
    Read-only lookup of known atom types by their 4-character code.

    A catalog never changes once built; extend() returns a new catalog.
    """

    def __init__(self, types: Iterable[AtomType] = ()):
        table: Dict[str, AtomType] = {}
        for atom_type in types:
            if len(atom_type.name) != 4:
                raise ValueError(
                    f"Atom type code must be 4 characters, got {atom_type.name!r}"
                )
            if AtomTypeFlags.CONTAINER_END in atom_type.flags:
                raise ValueError(
                    f"CONTAINER_END cannot be registered for {atom_type.name!r}"
                )
            table[atom_type.name] = atom_type
        self._types = MappingProxyType(table)

    def __getitem__(self, name: str) -> AtomType:
        return self._types[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._types)

    def __len__(self) -> int:
        return len(self._types)

    def flags_for(self, name: str) -> AtomTypeFlags:
        """Returns the registered flags for name, NONE when unknown."""
        atom_type = self._types.get(name)
        if atom_type is None:
            return AtomTypeFlags.NONE
        return atom_type.flags

    def extend(self, types: Iterable[AtomType]) -> "AtomCatalog":
        """Returns a new catalog with the given types added or replaced."""
        return AtomCatalog([*self._types.values(), *types])


DEFAULT_CATALOG = AtomCatalog(
    [
        AtomType("ftyp", AtomTypeFlags.NONE),
        AtomType(MOOV_TYPE_NAME, AtomTypeFlags.CONTAINER),
        AtomType("mdat", AtomTypeFlags.NONE),
        AtomType(UDTA_TYPE_NAME, AtomTypeFlags.CONTAINER),
        AtomType(META_TYPE_NAME, AtomTypeFlags.CONTAINER | AtomTypeFlags.SKIPPER),
        AtomType(ILST_TYPE_NAME, AtomTypeFlags.CONTAINER),
        AtomType("trak", AtomTypeFlags.CONTAINER),
        AtomType("mdia", AtomTypeFlags.CONTAINER),
        AtomType("minf", AtomTypeFlags.CONTAINER),
        AtomType("wide", AtomTypeFlags.TAGITEM),
        AtomType(TITLE_TYPE_NAME, AtomTypeFlags.TAGITEM),
        AtomType(SYNOPSIS_TYPE_NAME, AtomTypeFlags.TAGITEM),
    ]
)


class AtomState(enum.Enum):
    PENDING = "pending"
    CONSUMED = "consumed"


class AtomEvent:
    """
    A single traversal step: an atom header offered to the caller, or the
    synthetic end marker of a container.

    Everything but the consumption state is fixed at construction.
    """

    __slots__ = ("_name", "_flags", "_size", "_data_size", "_state")

    def __init__(self, name: str, flags: AtomTypeFlags, size: int, data_size: int):
        self._name = name
        self._flags = flags
        self._size = size
        self._data_size = data_size
        self._state = AtomState.PENDING

    @property
    def name(self) -> str:
        return self._name

    @property
    def flags(self) -> AtomTypeFlags:
        return self._flags

    @property
    def size(self) -> int:
        """Whole atom size, header included."""
        return self._size

    @property
    def data_size(self) -> int:
        """Payload size only."""
        return self._data_size

    @property
    def header_size(self) -> int:
        return self._size - self._data_size

    @property
    def state(self) -> AtomState:
        return self._state

    @property
    def consumed(self) -> bool:
        return self._state is AtomState.CONSUMED

    @property
    def is_container(self) -> bool:
        return AtomTypeFlags.CONTAINER in self._flags

    @property
    def is_container_end(self) -> bool:
        return AtomTypeFlags.CONTAINER_END in self._flags

    def consume(self):
        self._state = AtomState.CONSUMED

    def end_marker(self) -> "AtomEvent":
        """Builds the CONTAINER_END event closing this atom."""
        return AtomEvent(
            self._name, AtomTypeFlags.CONTAINER_END, self._size, self._data_size
        )

    def __repr__(self) -> str:
        return (
            f"AtomEvent(name={self._name!r}, flags={self._flags.describe()}, "
            f"size={self._size}, data_size={self._data_size}, "
            f"state={self._state.value})"
        )
