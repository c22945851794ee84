"""Tests for PKGBUILD loading and highlighting.

Covers control-byte sanitization, style fallback, and the plain-text path.
"""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from shaur import highlight
from shaur.ansi import strip_ansi


class HighlightTests(unittest.TestCase):
    def test_sanitize_escapes_control_bytes_but_keeps_whitespace(self) -> None:
        self.assertEqual(highlight.sanitize_terminal_text("a\x1b[2Jb\tc\n"), "a\\x1b[2Jb\tc\n")
        self.assertEqual(highlight.sanitize_terminal_text("plain"), "plain")

    def test_unknown_style_falls_back_to_default(self) -> None:
        self.assertEqual(highlight.normalize_style("no-such-style-anywhere"), highlight.DEFAULT_STYLE)
        self.assertEqual(highlight.normalize_style("monokai"), "monokai")

    def test_colorize_source_emits_ansi_and_preserves_text(self) -> None:
        source = 'pkgname=foo\nbuild() {\n  make\n}\n'
        rendered = highlight.colorize_source(source, Path("PKGBUILD"))
        self.assertIn("\x1b[", rendered)
        self.assertEqual(strip_ansi(rendered), source)

    def test_unrecognised_filename_uses_bash_lexer(self) -> None:
        rendered = highlight.colorize_source("echo hi\n", Path("no-extension-here"))
        self.assertEqual(strip_ansi(rendered), "echo hi\n")

    def test_render_file_plain_and_colored(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "PKGBUILD"
            path.write_text("pkgname=foo\npkgver=1\n", encoding="utf-8")

            plain = highlight.render_file(path, no_color=True)
            colored = highlight.render_file(path, style="native")

        self.assertEqual(plain, ["pkgname=foo", "pkgver=1"])
        self.assertEqual([strip_ansi(line) for line in colored], plain)

    def test_read_text_falls_back_to_latin1(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "PKGBUILD"
            path.write_bytes(b"pkgdesc='caf\xe9'\n")
            self.assertEqual(highlight.read_text(path), "pkgdesc='café'\n")


if __name__ == "__main__":
    unittest.main()
