# atomspector/format_handlers/mp4/mp4_utils.py
# !/usr/bin/env python3

import io
import struct
import logging

from typing import BinaryIO, Optional

from atomspector._exceptions import UnsupportedFormatError
from .mp4_atoms import AtomCatalog, AtomEvent

logger = logging.getLogger(__name__)

# Type codes are single-byte-per-character, e.g. the title tag starts with 0xA9.
FOURCC_ENCODING = "latin-1"

SHORT_HEADER_SIZE = 8
LONG_HEADER_SIZE = 16


def _read_uint32(f: BinaryIO) -> Optional[int]:
    b = f.read(4)
    if len(b) < 4:
        logger.debug(f"DEBUG_READ: _read_uint32: EOF or not enough bytes. Bytes read: {b!r}")
        return None
    return struct.unpack(">I", b)[0]


def _read_uint64(f: BinaryIO) -> Optional[int]:
    b = f.read(8)
    if len(b) < 8:
        logger.debug(f"DEBUG_READ: _read_uint64: EOF or not enough bytes. Bytes read: {b!r}")
        return None
    return struct.unpack(">Q", b)[0]


def _read_fourcc(f: BinaryIO) -> Optional[str]:
    b = f.read(4)
    if len(b) < 4:
        logger.debug(f"DEBUG_READ: _read_fourcc: EOF or not enough bytes. Bytes read: {b!r}")
        return None
    return b.decode(FOURCC_ENCODING)


def _skip(f: BinaryIO, size: int):
    """Moves the stream position forward by size bytes."""
    if size > 0:
        f.seek(size, io.SEEK_CUR)


def read_atom_header(f: BinaryIO, catalog: AtomCatalog) -> Optional[AtomEvent]:
    """
    Reads the atom header at the current stream position.

    Returns None when the stream ends before a complete header, which is the
    normal end of an atom sequence. Handles both 32-bit and 64-bit atom sizes.
    Open-ended atoms (size 0) are not supported.
    """
    size_32 = _read_uint32(f)
    if size_32 is None:
        return None

    name = _read_fourcc(f)
    if name is None:
        return None

    if size_32 == 0:
        raise UnsupportedFormatError(
            f"Open-ended atom '{name}' (size 0) is not supported."
        )

    if size_32 == 1:  # Extended size (64-bit)
        size = _read_uint64(f)
        if size is None:
            logger.debug(
                f"DEBUG_ATOM_HEADER: Missing 64-bit size for atom '{name}'. Ending sequence."
            )
            return None
        header_size = LONG_HEADER_SIZE
    else:
        size = size_32
        header_size = SHORT_HEADER_SIZE

    if size < header_size:
        raise UnsupportedFormatError(
            f"Invalid size {size} for atom '{name}', smaller than its {header_size} byte header."
        )

    flags = catalog.flags_for(name)
    logger.debug(
        f"DEBUG_ATOM_HEADER: Found atom '{name}' size={size} header={header_size} flags={flags.describe()}"
    )
    return AtomEvent(name, flags, size, size - header_size)
