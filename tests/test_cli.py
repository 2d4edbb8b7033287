"""Tests for the nbted command line."""

import contextlib
import io
import os
import shlex
import shutil
import sys
import tempfile
import textwrap
import unittest
from pathlib import Path
from unittest import mock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from nbt_fixtures import HELLO_WORLD_BYTES, HELLO_WORLD_TEXT
from nbted import __version__
from nbted.binary import parse_nbt
from nbted.cli import CommandError, find_editor, main
from nbted.tags import NbtFile, Tag


def binary_stdio(data: bytes = b"") -> io.TextIOWrapper:
    return io.TextIOWrapper(io.BytesIO(data), encoding="utf-8")


class CliTestCase(unittest.TestCase):

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp(prefix="nbted-test"))
        self.addCleanup(shutil.rmtree, self.tmpdir)

    def write(self, name: str, data: bytes) -> str:
        path = self.tmpdir / name
        path.write_bytes(data)
        return str(path)

    def run_main(self, argv, stdin: bytes = b"", stdin_text: str | None = None):
        """Run main() with captured stdio. Returns (status, stdout bytes, stderr text)."""
        stdout = binary_stdio()
        stderr = io.StringIO()
        fake_stdin = io.StringIO(stdin_text) if stdin_text is not None else binary_stdio(stdin)
        with mock.patch.object(sys, "stdin", fake_stdin), \
                mock.patch.object(sys, "stdout", stdout), \
                contextlib.redirect_stderr(stderr):
            status = main(argv)
        stdout.flush()
        return status, stdout.buffer.getvalue(), stderr.getvalue()

    def editor_script(self, body: str) -> str:
        """An $EDITOR value running a small Python script on the file."""
        script = self.tmpdir / "editor.py"
        script.write_text(textwrap.dedent(body))
        return f"{shlex.quote(sys.executable)} {shlex.quote(str(script))}"


class TestPrintReverse(CliTestCase):

    def test_print(self):
        path = self.write("hello.nbt", HELLO_WORLD_BYTES)
        status, out, _ = self.run_main(["-p", path])
        self.assertEqual(status, 0)
        self.assertEqual(out, HELLO_WORLD_TEXT)

    def test_print_from_stdin(self):
        status, out, _ = self.run_main(["--print"], stdin=HELLO_WORLD_BYTES)
        self.assertEqual(status, 0)
        self.assertEqual(out, HELLO_WORLD_TEXT)

    def test_print_to_file(self):
        path = self.write("hello.nbt", HELLO_WORLD_BYTES)
        output = self.tmpdir / "hello.txt"
        status, out, _ = self.run_main(["--input", path, "--print", "--output", str(output)])
        self.assertEqual(status, 0)
        self.assertEqual(out, b"")
        self.assertEqual(output.read_bytes(), HELLO_WORLD_TEXT)

    def test_print_yaml(self):
        path = self.write("hello.nbt", HELLO_WORLD_BYTES)
        status, out, _ = self.run_main(["-p", path, "--yaml"])
        self.assertEqual(status, 0)
        self.assertIn(b"hello world:", out)
        self.assertIn(b"name: Bananrama", out)

    def test_yaml_needs_print(self):
        path = self.write("hello.txt", HELLO_WORLD_TEXT)
        status, _, err = self.run_main(["-r", path, "--yaml"])
        self.assertEqual(status, 1)
        self.assertIn("--yaml can only be used with --print", err)

    def test_reverse(self):
        path = self.write("hello.txt", HELLO_WORLD_TEXT)
        output = self.tmpdir / "hello.nbt"
        status, _, _ = self.run_main(["-r", path, "-o", str(output)])
        self.assertEqual(status, 0)
        self.assertEqual(output.read_bytes(), HELLO_WORLD_BYTES)

    def test_reverse_from_stdin(self):
        status, out, _ = self.run_main(["-r"], stdin=HELLO_WORLD_TEXT)
        self.assertEqual(status, 0)
        self.assertEqual(out, HELLO_WORLD_BYTES)

    def test_print_does_not_write_back_to_free_file(self):
        path = self.write("hello.nbt", HELLO_WORLD_BYTES)
        status, out, _ = self.run_main([path, "-p"])
        self.assertEqual(status, 0)
        self.assertEqual(out, HELLO_WORLD_TEXT)
        self.assertEqual(Path(path).read_bytes(), HELLO_WORLD_BYTES)


class TestErrors(CliTestCase):

    def test_one_action_at_a_time(self):
        status, _, err = self.run_main(["-p", "-r"])
        self.assertEqual(status, 1)
        self.assertIn("You can only specify one action at a time.", err)

    def test_one_file_at_a_time(self):
        status, _, err = self.run_main(["a.nbt", "b.nbt"])
        self.assertEqual(status, 1)
        self.assertIn("only supports editing one file at a time", err)

    def test_missing_file(self):
        status, _, err = self.run_main(["-p", str(self.tmpdir / "missing.nbt")])
        self.assertEqual(status, 1)
        self.assertIn("Unable to open file", err)

    def test_not_nbt(self):
        path = self.write("junk.nbt", b"\x01junk")
        status, _, err = self.run_main(["-p", path])
        self.assertEqual(status, 1)
        self.assertIn("are you sure it's an NBT file?", err)
        self.assertIn("caused by: Unknown compression format where first byte is 0x01", err)

    def test_bad_text_reports_context(self):
        path = self.write("bad.txt", b'None Compound "a" Int "n" NotAnInt End End')
        status, _, err = self.run_main(["-r", path])
        self.assertEqual(status, 1)
        self.assertIn("caused by: Invalid Int NotAnInt", err)
        self.assertIn("\twhile reading Int tag 'n'", err)
        self.assertIn("\twhile reading Compound tag 'a'", err)

    def test_version(self):
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout), self.assertRaises(SystemExit) as ctx:
            main(["--version"])
        self.assertEqual(ctx.exception.code, 0)
        self.assertEqual(stdout.getvalue().strip(), f"nbted {__version__}")


class TestEdit(CliTestCase):

    def test_edit_in_place(self):
        path = self.write("hello.nbt", HELLO_WORLD_BYTES)
        editor = self.editor_script("""
            import sys
            with open(sys.argv[1], "rb") as f:
                data = f.read()
            with open(sys.argv[1], "wb") as f:
                f.write(data.replace(b"Bananrama", b"Bananarama"))
        """)
        with mock.patch.dict(os.environ, {"EDITOR": editor}):
            status, out, err = self.run_main([path])
        self.assertEqual(status, 0)
        self.assertEqual(out, b"")
        self.assertIn("File edited successfully.", err)
        edited = parse_nbt(Path(path).read_bytes())
        self.assertEqual(edited.root.get("hello world").get("name").value, b"Bananarama")

    def test_edit_sees_the_text_form(self):
        path = self.write("hello.nbt", HELLO_WORLD_BYTES)
        seen = self.tmpdir / "seen.txt"
        editor = self.editor_script(f"""
            import shutil, sys
            shutil.copyfile(sys.argv[1], {str(seen)!r})
        """)
        with mock.patch.dict(os.environ, {"EDITOR": editor}):
            self.run_main(["--edit", path])
        self.assertEqual(seen.read_bytes(), HELLO_WORLD_TEXT)

    def test_no_changes(self):
        path = self.write("hello.nbt", HELLO_WORLD_BYTES)
        editor = f"{shlex.quote(sys.executable)} -c pass"
        with mock.patch.dict(os.environ, {"EDITOR": editor}):
            status, _, err = self.run_main([path])
        self.assertEqual(status, 0)
        self.assertIn("No changes, will do nothing.", err)
        self.assertEqual(Path(path).read_bytes(), HELLO_WORLD_BYTES)

    def test_edit_to_other_output(self):
        path = self.write("hello.nbt", HELLO_WORLD_BYTES)
        output = self.tmpdir / "out.nbt"
        editor = self.editor_script("""
            import sys
            with open(sys.argv[1], "w") as f:
                f.write('Zlib Compound "hello world" String "name" "x" End End')
        """)
        with mock.patch.dict(os.environ, {"EDITOR": editor}):
            status, _, _ = self.run_main(["-e", path, "-o", str(output)])
        self.assertEqual(status, 0)
        self.assertEqual(Path(path).read_bytes(), HELLO_WORLD_BYTES)
        self.assertEqual(output.read_bytes()[0], 0x78)

    def test_parse_error_then_give_up(self):
        path = self.write("hello.nbt", HELLO_WORLD_BYTES)
        editor = self.editor_script("""
            import sys
            with open(sys.argv[1], "w") as f:
                f.write('None Int "n" NotAnInt')
        """)
        with mock.patch.dict(os.environ, {"EDITOR": editor}):
            status, _, err = self.run_main([path], stdin_text="n\n")
        self.assertEqual(status, 0)
        self.assertIn("Unable to parse edited file", err)
        self.assertIn("Do you want to open the file for editing again? (y/N)", err)
        self.assertIn("Exiting ... File is unchanged.", err)
        self.assertEqual(Path(path).read_bytes(), HELLO_WORLD_BYTES)

    def test_parse_error_then_retry(self):
        path = self.write("hello.nbt", HELLO_WORLD_BYTES)
        counter = self.tmpdir / "count"
        editor = self.editor_script(f"""
            import os, sys
            counter = {str(counter)!r}
            first = not os.path.exists(counter)
            open(counter, "a").close()
            with open(sys.argv[1], "w") as f:
                if first:
                    f.write("None Bogus")
                else:
                    f.write('None Compound "hello world" String "name" "fixed" End End')
        """)
        with mock.patch.dict(os.environ, {"EDITOR": editor}):
            status, _, err = self.run_main([path], stdin_text="y\n")
        self.assertEqual(status, 0)
        self.assertIn("File edited successfully.", err)
        expected = Tag.compound([("hello world", Tag.compound([("name", Tag.string("fixed"))]))])
        self.assertEqual(parse_nbt(Path(path).read_bytes()), NbtFile(root=expected))

    def test_editor_failure_is_reported(self):
        path = self.write("hello.nbt", HELLO_WORLD_BYTES)
        editor = f"{shlex.quote(sys.executable)} -c 'raise SystemExit(3)'"
        with mock.patch.dict(os.environ, {"EDITOR": editor}):
            status, _, err = self.run_main([path], stdin_text="\n")
        self.assertEqual(status, 0)
        self.assertIn("Editor did not exit correctly", err)


class TestFindEditor(unittest.TestCase):

    def test_editor_before_visual(self):
        with mock.patch.dict(os.environ, {"EDITOR": "vim -n", "VISUAL": "emacs"}):
            self.assertEqual(find_editor(), ["vim", "-n"])

    def test_visual_fallback(self):
        with mock.patch.dict(os.environ, {"VISUAL": "code --wait"}):
            os.environ.pop("EDITOR", None)
            self.assertEqual(find_editor(), ["code", "--wait"])

    def test_no_editor(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(CommandError):
                find_editor()


if __name__ == "__main__":
    unittest.main()
