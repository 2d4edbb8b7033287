"""
nbted command line: edit, print and reverse NBT files.

Usage:
    nbted level.dat                  Edit level.dat in place with $EDITOR
    nbted -p level.dat               Print level.dat in the pretty text format
    nbted -p level.dat --yaml        Print level.dat as plain YAML
    nbted -r level.txt -o level.dat  Convert a text file back to NBT

Copyright (C) 2026 wszqkzqk <wszqkzqk@qq.com>

This library is free software; you can redistribute it and/or
modify it under the terms of the GNU Lesser General Public
License as published by the Free Software Foundation; either
version 2.1 of the License, or (at your option) any later version.

This library is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
Lesser General Public License for more details.

You should have received a copy of the GNU Lesser General Public
License along with this library; if not, write to the Free Software
Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston, MA  02110-1301  USA
"""

import argparse
import os
import shlex
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Optional

from . import __version__
from .binary import nbt_to_bytes, parse_nbt
from .errors import NbtError
from .tags import NbtFile
from .text import parse_text, text_to_bytes
from .yaml_export import dump_yaml

STDIO = "-"

# Checked in this order
EDITOR_VARIABLES = ("EDITOR", "VISUAL")


class CommandError(Exception):
    """A failure to report to the user; the underlying error is its __cause__."""


def print_error(exc: BaseException):
    print(f"Error: {exc}", file=sys.stderr)
    cause = exc.__cause__
    while cause is not None:
        print_caused_by(cause)
        cause = cause.__cause__


def print_caused_by(exc: BaseException):
    text = exc.describe() if isinstance(exc, NbtError) else str(exc)
    first, *context = (text or type(exc).__name__).splitlines()
    print(f"\tcaused by: {first}", file=sys.stderr)
    for line in context:
        print(f"\t{line}", file=sys.stderr)


# ============================================================================
# Input / Output
# ============================================================================

def read_input(path: str, what: str) -> bytes:
    if path == STDIO:
        return sys.stdin.buffer.read()
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise CommandError(f"Unable to open {what} {path}") from e


def read_nbt(path: str) -> NbtFile:
    data = read_input(path, "file")
    try:
        return parse_nbt(data)
    except NbtError as e:
        raise CommandError(f"Unable to parse {path}, are you sure it's an NBT file?") from e


def write_output(path: str, data: bytes) -> int:
    """Write the result. A failing stdout exits with 1 and no message."""
    if path == STDIO:
        try:
            sys.stdout.buffer.write(data)
            sys.stdout.buffer.flush()
        except OSError:
            return 1
        return 0

    try:
        Path(path).write_bytes(data)
    except OSError as e:
        raise CommandError(
            f"Error writing file {path}. State of the file is unknown, "
            "consider restoring it from a backup."
        ) from e
    return 0


# ============================================================================
# Editor
# ============================================================================

def find_editor() -> list[str]:
    for variable in EDITOR_VARIABLES:
        editor = os.environ.get(variable)
        if editor:
            return shlex.split(editor)
    raise CommandError("Unable to find $EDITOR")


def open_editor(tmp_path: Path) -> NbtFile:
    """Run the editor on the text file, then parse what it left behind."""
    command = find_editor() + [str(tmp_path)]
    try:
        result = subprocess.run(command)
    except OSError as e:
        raise CommandError("Error opening editor") from e
    if result.returncode != 0:
        raise CommandError("Editor did not exit correctly")

    try:
        data = tmp_path.read_bytes()
    except OSError as e:
        raise CommandError("Unable to read temporary file. Nothing was changed.") from e
    try:
        return parse_text(data)
    except NbtError as e:
        raise CommandError("Unable to parse edited file") from e


def ask_again() -> bool:
    print("Do you want to open the file for editing again? (y/N)", file=sys.stderr)
    line = sys.stdin.readline()
    return line.strip() == "y"


# ============================================================================
# Commands
# ============================================================================

def cmd_edit(input_path: str, output_path: str) -> int:
    """Edit an NBT file as text in the user's editor."""
    nbt_file = read_nbt(input_path)

    with tempfile.TemporaryDirectory(prefix="nbted") as tmpdir:
        tmp_path = Path(tmpdir) / f"{Path(input_path).name}.txt"
        tmp_path.write_bytes(text_to_bytes(nbt_file))

        while True:
            try:
                new_file = open_editor(tmp_path)
                break
            except CommandError as e:
                print_error(e)
                if not ask_again():
                    print("Exiting ... File is unchanged.", file=sys.stderr)
                    return 0

    if new_file == nbt_file:
        print("No changes, will do nothing.", file=sys.stderr)
        return 0

    status = write_output(output_path, nbt_to_bytes(new_file))
    if status == 0:
        print("File edited successfully.", file=sys.stderr)
    return status


def cmd_print(input_path: str, output_path: str, as_yaml: bool = False) -> int:
    """Print an NBT file in the text format (or YAML)."""
    nbt_file = read_nbt(input_path)
    try:
        if as_yaml:
            data = dump_yaml(nbt_file).encode("utf-8")
        else:
            data = text_to_bytes(nbt_file)
    except NbtError as e:
        raise CommandError(f"Unable to convert {input_path} to text") from e
    return write_output(output_path, data)


def cmd_reverse(input_path: str, output_path: str) -> int:
    """Convert a text file back into an NBT file."""
    data = read_input(input_path, "text file")
    try:
        nbt_file = parse_text(data)
    except NbtError as e:
        raise CommandError(f"Unable to parse text file {input_path}") from e
    return write_output(output_path, nbt_to_bytes(nbt_file))


# ============================================================================
# CLI
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nbted",
        description="Edit NBT files as text",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
The default action, taken if no action is explicitly selected, is to --edit.

Examples:
  %(prog)s level.dat                    Edit level.dat in place with $EDITOR
  %(prog)s -p level.dat > level.txt     Print level.dat in the text format
  %(prog)s -p level.dat --yaml          Print level.dat as plain YAML
  %(prog)s -r level.txt -o level.dat    Convert a text file back to NBT
"""
    )
    parser.add_argument("-e", "--edit", nargs="?", const="", metavar="FILE",
                        help="edit an NBT file with your $EDITOR. If FILE is given it is edited "
                             "in place, unless --input and/or --output say otherwise")
    parser.add_argument("-p", "--print", nargs="?", const="", metavar="FILE", dest="print_",
                        help="print an NBT file in the text format. FILE is the same as --input")
    parser.add_argument("-r", "--reverse", nargs="?", const="", metavar="FILE",
                        help="convert a file in the text format to NBT. FILE is the same as --input")
    parser.add_argument("-i", "--input", metavar="FILE", help="input file, defaults to stdin")
    parser.add_argument("-o", "--output", metavar="FILE", help="output file, defaults to stdout")
    parser.add_argument("--yaml", action="store_true",
                        help="with --print, write plain YAML instead of the text format")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("files", nargs="*", metavar="FILE", help="file to edit")
    return parser


def resolve_paths(args, is_edit: bool) -> tuple[str, str]:
    """Pick the input and output paths, "-" meaning stdin/stdout."""
    free = args.files[0] if args.files else None

    input_path = (args.input or args.edit or args.print_ or args.reverse
                  or free or STDIO)
    # Only write back to the file that was read when editing
    output_path = args.output or args.edit or (free if is_edit else None) or STDIO
    return input_path, output_path


def run(args) -> int:
    is_print = args.print_ is not None
    is_reverse = args.reverse is not None
    is_edit = args.edit is not None or not (is_print or is_reverse)

    if sum((is_print, is_reverse, is_edit)) > 1:
        raise CommandError("You can only specify one action at a time.")
    if len(args.files) > 1:
        raise CommandError("nbted was given multiple arguments, but only supports editing one file at a time.")
    if args.yaml and not is_print:
        raise CommandError("--yaml can only be used with --print.")

    input_path, output_path = resolve_paths(args, is_edit)

    if is_print:
        return cmd_print(input_path, output_path, as_yaml=args.yaml)
    if is_reverse:
        return cmd_reverse(input_path, output_path)
    return cmd_edit(input_path, output_path)


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return run(args)
    except CommandError as e:
        print_error(e)
        print("For help, run with --help.", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
