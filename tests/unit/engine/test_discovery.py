from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from shaur.engine.discovery import discover_repositories, has_git_marker
from shaur.errors import RootNotFound


class DiscoverRepositoriesTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _make_repo(self, name: str, descriptor: bool = True) -> Path:
        path = self.root / name
        (path / ".git").mkdir(parents=True)
        if descriptor:
            (path / "PKGBUILD").write_text("pkgname=" + name + "\n", encoding="utf-8")
        return path

    def test_only_directories_with_git_marker_are_listed_in_name_order(self) -> None:
        self._make_repo("zsh-theme")
        self._make_repo("brave-bin")
        (self.root / "foo").mkdir()
        (self.root / "notes.txt").write_text("x", encoding="utf-8")

        result = discover_repositories(self.root)

        self.assertEqual([repo.name for repo in result.repositories], ["brave-bin", "zsh-theme"])
        self.assertEqual(len(result), 2)
        self.assertEqual(result.root, self.root)

    def test_git_file_is_not_a_marker(self) -> None:
        worktree = self.root / "worktree"
        worktree.mkdir()
        (worktree / ".git").write_text("gitdir: elsewhere\n", encoding="utf-8")

        self.assertFalse(has_git_marker(worktree))
        self.assertEqual(len(discover_repositories(self.root)), 0)

    def test_descriptor_presence_is_recorded_and_counted(self) -> None:
        self._make_repo("with-pkgbuild")
        self._make_repo("without-pkgbuild", descriptor=False)

        result = discover_repositories(self.root)

        flags = {repo.name: repo.has_descriptor for repo in result.repositories}
        self.assertEqual(flags, {"with-pkgbuild": True, "without-pkgbuild": False})
        self.assertEqual(result.without_descriptor, 1)

    def test_repository_paths_point_into_root(self) -> None:
        path = self._make_repo("yay")
        (repo,) = discover_repositories(self.root).repositories
        self.assertEqual(repo.path, path)

    def test_empty_root_yields_empty_result(self) -> None:
        result = discover_repositories(self.root)
        self.assertEqual(result.repositories, ())
        self.assertEqual(result.without_descriptor, 0)

    def test_missing_root_raises(self) -> None:
        missing = self.root / "nope"
        with self.assertRaises(RootNotFound) as ctx:
            discover_repositories(missing)
        self.assertEqual(str(ctx.exception), f"The directory {missing} does not exist.")

    def test_custom_descriptor_check_is_used(self) -> None:
        self._make_repo("a", descriptor=False)
        result = discover_repositories(self.root, descriptor_check=lambda path: True)
        self.assertTrue(result.repositories[0].has_descriptor)


if __name__ == "__main__":
    unittest.main()
