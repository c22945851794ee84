from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from shaur.descriptor import (
    NOT_AVAILABLE,
    DescriptorInfo,
    descriptor_exists,
    parse_descriptor,
    read_descriptor_info,
)

PKGBUILD = """\
# Maintainer: Someone <someone@example.com>
pkgname=yay-bin
pkgver=12.3.5
pkgrel=1
pkgdesc="Yet another yogurt. Pacman wrapper and AUR helper written in go."
arch=('x86_64' 'aarch64')
depends=(
  'pacman>5'   # runtime
  "git"
  sudo
)
makedepends=('go')

package() {
  pkgname=ignored
}
"""


class ParseDescriptorTests(unittest.TestCase):
    def test_scalar_fields_are_unquoted(self) -> None:
        info = parse_descriptor(PKGBUILD)
        self.assertEqual(info.pkgname, "yay-bin")
        self.assertEqual(info.pkgdesc, "Yet another yogurt. Pacman wrapper and AUR helper written in go.")
        self.assertEqual(info.version, "12.3.5-1")

    def test_multiline_depends_array_drops_comments_and_quotes(self) -> None:
        self.assertEqual(parse_descriptor(PKGBUILD).depends, ("pacman>5", "git", "sudo"))

    def test_indented_assignments_are_ignored(self) -> None:
        source = "  pkgname=inner\npkgname=outer\n"
        self.assertEqual(parse_descriptor(source).pkgname, "outer")

    def test_missing_fields_report_not_available(self) -> None:
        info = parse_descriptor("arch=('any')\n")
        self.assertEqual(info, DescriptorInfo())
        self.assertEqual(info.pkgname, NOT_AVAILABLE)
        self.assertIsNone(info.version)
        self.assertEqual(info.depends, ())

    def test_version_without_pkgrel_is_pkgver(self) -> None:
        self.assertEqual(parse_descriptor("pkgver=1.0\n").version, "1.0")

    def test_single_line_depends(self) -> None:
        self.assertEqual(parse_descriptor("depends=('glibc' 'zlib')\n").depends, ("glibc", "zlib"))


class DescriptorFileTests(unittest.TestCase):
    def test_read_descriptor_info_from_repository(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            repo = Path(tmp)
            self.assertFalse(descriptor_exists(repo))
            self.assertIsNone(read_descriptor_info(repo))

            (repo / "PKGBUILD").write_text(PKGBUILD, encoding="utf-8")

            self.assertTrue(descriptor_exists(repo))
            info = read_descriptor_info(repo)
            self.assertIsNotNone(info)
            self.assertEqual(info.pkgname, "yay-bin")

    def test_directory_named_pkgbuild_does_not_count(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            repo = Path(tmp)
            (repo / "PKGBUILD").mkdir()
            self.assertFalse(descriptor_exists(repo))
            self.assertIsNone(read_descriptor_info(repo))


if __name__ == "__main__":
    unittest.main()
