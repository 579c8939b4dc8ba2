# atomspector/format_handlers/__init__.py
# !/usr/bin/env python3

"""
This package contains the container format readers.
The mp4 subpackage walks ISO base media (MP4/QuickTime) atom trees.
"""
