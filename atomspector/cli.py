# atomspector/cli.py
# !/usr/env/bin python3

"""
cli.py
~~~~~~~~~~~~~~~

This module provides the command-line interface for the atomspector library.
"""

import argparse
import json
import sys
import os

from .inspector import AtomInspector
from ._exceptions import AtomspectorError
from .format_handlers.mp4.mp4_atoms import SYNOPSIS_TYPE_NAME, TITLE_TYPE_NAME

TAG_ALIASES = {
    "title": TITLE_TYPE_NAME,
    "synopsis": SYNOPSIS_TYPE_NAME,
}


def check_source_path(path):
    """Custom type function for argparse to validate if a path is a file or a URL."""
    if path.startswith(("http://", "https://")):
        return path
    if not os.path.isfile(path):
        raise argparse.ArgumentTypeError(
            f"The path '{path}' does not exist or is not a file."
        )
    return path


def check_tag(tag):
    """Custom type function for argparse accepting a tag alias or a 4-character type code."""
    if tag in TAG_ALIASES:
        return tag
    if len(tag) != 4:
        raise argparse.ArgumentTypeError(
            f"The tag '{tag}' is neither one of {', '.join(TAG_ALIASES)} nor a 4-character type code."
        )
    return tag


def report_http_requests(inspector):
    """Prints the number of range requests a remote source needed."""
    if inspector.http_requests_count is not None:
        print(f"#http requests: {inspector.http_requests_count}", file=sys.stderr)


def atoms(args):
    """Handles the 'atoms' subcommand."""
    try:
        inspector = AtomInspector(args.filepath)
        listing = inspector.list_atoms()
        print(json.dumps(listing, indent=2, ensure_ascii=False))
        report_http_requests(inspector)
    except (
            AtomspectorError,
            FileNotFoundError,
            ValueError,
            IOError,
    ) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"An unexpected error occurred: {e}", file=sys.stderr)
        sys.exit(1)


def get(args):
    """Handles the 'get' subcommand."""
    try:
        inspector = AtomInspector(args.filepath)
        value = inspector.get_tag(TAG_ALIASES.get(args.tag, args.tag))
        print(json.dumps({args.tag: value}, indent=2, ensure_ascii=False))
        report_http_requests(inspector)
    except (
            AtomspectorError,
            FileNotFoundError,
            ValueError,
            IOError,
    ) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"An unexpected error occurred: {e}", file=sys.stderr)
        sys.exit(1)


def main(argv=None):
    """Defines the command-line entry point for the tool."""
    parser = argparse.ArgumentParser(
        description="Walk the atom tree of MP4/QuickTime files or URLs.",
        epilog="Use 'atomspector <command> --help' for more information on a specific command.",
    )

    subparsers = parser.add_subparsers(
        dest="command", required=True, help="Available commands"
    )

    # --- Parser for the 'atoms' command ---
    atoms_parser = subparsers.add_parser(
        "atoms",
        help="List every atom of a file/URL as JSON.",
        epilog=(
            "Example: atomspector atoms /path/to/my_video.mp4\n"
            "Example: atomspector atoms https://example.com/movie.m4v"
        ),
    )
    atoms_parser.add_argument(
        "filepath",
        type=check_source_path,
        help="The full path or URL to the media file to walk.",
    )
    atoms_parser.set_defaults(func=atoms)

    # --- Parser for the 'get' command ---
    get_parser = subparsers.add_parser(
        "get",
        help="Print a single metadata tag of a file/URL.",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog=(
            "Examples:\n"
            "  # Title of a local file\n"
            "  atomspector get my_video.mp4\n\n"
            "  # Synopsis of a remote file\n"
            "  atomspector get https://example.com/movie.m4v --tag synopsis"
        ),
    )
    get_parser.add_argument(
        "filepath",
        type=check_source_path,
        help="The full path or URL to the media file to read.",
    )
    get_parser.add_argument(
        "--tag",
        type=check_tag,
        default="title",
        help="'title', 'synopsis' or any 4-character tag type code (default: title).",
    )
    get_parser.set_defaults(func=get)

    args = parser.parse_args(argv)

    if hasattr(args, "func"):
        args.func(args)


if __name__ == "__main__":
    main()
