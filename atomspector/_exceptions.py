# atomspector/_exceptions.py
# !/usr/bin/env python3


class AtomspectorError(Exception):
    """Base class for all errors raised by atomspector."""

    pass


class UnsupportedFormatError(AtomspectorError):
    """Raised when an atom header cannot be handled, e.g. an open-ended (size 0) atom."""

    pass


class ProtocolError(AtomspectorError):
    """
    Raised when the reader is driven incorrectly: a consuming operation was
    called with no current atom, on an atom that is already consumed, or a
    text read was requested for a container.
    """

    pass
