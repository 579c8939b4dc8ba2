# atomspector/sources/__init__.py
# !/usr/bin/env python3

"""
Byte sources the atom reader can walk besides local files.
"""

from .http_stream import PartialHttpStream
