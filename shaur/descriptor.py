"""PKGBUILD presence checks and display-only metadata extraction.

The build descriptor is never interpreted: the values below are shown on the
repository information screen and nothing else reads them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from .highlight import read_text

DESCRIPTOR_FILENAME = "PKGBUILD"
NOT_AVAILABLE = "N/A"

_ARRAY_TOKEN_RE = re.compile(r"'[^']*'|\"[^\"]*\"|[^\s'\"]+")


@dataclass(frozen=True)
class DescriptorInfo:
    pkgname: str = NOT_AVAILABLE
    pkgver: str = NOT_AVAILABLE
    pkgrel: str = NOT_AVAILABLE
    pkgdesc: str = NOT_AVAILABLE
    depends: tuple[str, ...] = ()

    @property
    def version(self) -> str | None:
        """``pkgver-pkgrel`` when both are known, ``pkgver`` alone, else ``None``."""
        if self.pkgver == NOT_AVAILABLE:
            return None
        if self.pkgrel == NOT_AVAILABLE:
            return self.pkgver
        return f"{self.pkgver}-{self.pkgrel}"


def descriptor_path(repo_path: Path) -> Path:
    return repo_path / DESCRIPTOR_FILENAME


def descriptor_exists(repo_path: Path) -> bool:
    return descriptor_path(repo_path).is_file()


def _strip_quotes(value: str) -> str:
    return value.replace('"', "").replace("'", "").strip()


def _scalar(source: str, name: str) -> str:
    match = re.search(rf"^{re.escape(name)}=(.*)$", source, flags=re.MULTILINE)
    if match is None:
        return NOT_AVAILABLE
    value = _strip_quotes(match.group(1))
    return value or NOT_AVAILABLE


def _array(source: str, name: str) -> tuple[str, ...]:
    match = re.search(rf"^{re.escape(name)}=\((.*?)\)", source, flags=re.MULTILINE | re.DOTALL)
    if match is None:
        return ()
    body = "\n".join(line.split("#", 1)[0] for line in match.group(1).splitlines())
    return tuple(
        stripped for token in _ARRAY_TOKEN_RE.findall(body) if (stripped := _strip_quotes(token))
    )


def parse_descriptor(source: str) -> DescriptorInfo:
    """Pull the first top-level assignment of each displayed PKGBUILD variable."""
    return DescriptorInfo(
        pkgname=_scalar(source, "pkgname"),
        pkgver=_scalar(source, "pkgver"),
        pkgrel=_scalar(source, "pkgrel"),
        pkgdesc=_scalar(source, "pkgdesc"),
        depends=_array(source, "depends"),
    )


def read_descriptor_info(repo_path: Path) -> DescriptorInfo | None:
    """Parse ``repo_path/PKGBUILD``; ``None`` when absent or unreadable."""
    path = descriptor_path(repo_path)
    if not path.is_file():
        return None
    try:
        return parse_descriptor(read_text(path))
    except OSError:
        return None
