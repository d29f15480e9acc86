"""
Pacscript document model.

A pacscript is kept as an ordered list of lines. Parsing runs over the joined
text; rewriting only ever happens through LinePatch records that replace a
substring inside a known column span of a known line.
"""

import re
from bisect import bisect_right
from dataclasses import dataclass, field
from pathlib import Path

from pacscript_updater.core.exceptions import MalformedDocumentError


def version_pattern(version: str) -> re.Pattern:
    """Match `version` only where it is not part of a longer version (`11.0.3` for `1.0`)."""
    return re.compile(rf"(?<![\d.]){re.escape(version)}(?!\d|\.\d)")


@dataclass(frozen=True)
class Token:
    """One decoded shell word together with the span of its raw text."""

    value: str
    line: int
    start: int  # column of the first raw character
    end: int  # column after the last raw character, on the same line
    single_line: bool = True


@dataclass(frozen=True)
class Field:
    """A located assignment: scalar fields hold one token, arrays many."""

    name: str
    tokens: list[Token]
    is_array: bool = False

    @property
    def values(self) -> list[str]:
        return [token.value for token in self.tokens]


@dataclass(frozen=True)
class LinePatch:
    """
    Replace `old` with `new` inside columns [start, end) of one line.

    A bounded patch leaves occurrences of `old` that are part of a longer
    version alone.
    """

    line: int
    start: int
    end: int
    old: str
    new: str
    bounded: bool = False

    @classmethod
    def for_token(cls, token: Token, old: str, new: str, bounded: bool = False) -> "LinePatch":
        if not token.single_line:
            raise MalformedDocumentError(
                f"cannot patch value spanning several lines (line {token.line + 1})"
            )
        return cls(line=token.line, start=token.start, end=token.end, old=old, new=new, bounded=bounded)


@dataclass(frozen=True)
class SourceEntry:
    """One element of a source array bound to its expected digests."""

    filename: str
    url: str
    sums: dict[str, str | None] = field(default_factory=dict)
    index: int = 0
    arch: str | None = None

    @property
    def is_vcs(self) -> bool:
        return "+" in self.url.split("://", 1)[0]

    @property
    def checked_hashes(self) -> list[str]:
        """Hash types with an expected digest (SKIP and absent excluded)."""
        return [hashtype for hashtype, digest in self.sums.items() if digest is not None]


class PackageDocument:
    """
    The ordered lines of one pacscript file.

    Lines are stored without their terminators. `render()` joins them with
    newlines and always adds a trailing one.
    """

    def __init__(self, path: Path | None, lines: list[str]):
        self.path = path
        self.lines = list(lines)
        self._text: str | None = None
        self._line_starts: list[int] | None = None

    @classmethod
    def from_text(cls, text: str, path: Path | None = None) -> "PackageDocument":
        # Only "\n" ends a line, unlike splitlines()
        lines = text.split("\n")
        if lines[-1] == "":
            lines.pop()
        return cls(path, lines)

    @property
    def text(self) -> str:
        if self._text is None:
            self._text = "\n".join(self.lines)
        return self._text

    def position(self, offset: int) -> tuple[int, int]:
        """Map a character offset of `text` to (line, column)."""
        if self._line_starts is None:
            starts = [0]
            for line in self.lines[:-1]:
                starts.append(starts[-1] + len(line) + 1)
            self._line_starts = starts
        line = bisect_right(self._line_starts, offset) - 1
        return line, offset - self._line_starts[line]

    def render(self) -> str:
        return "\n".join(self.lines) + "\n"

    def apply_patches(self, patches: list[LinePatch]) -> "PackageDocument":
        """Return a new document with every patch applied."""
        lines = list(self.lines)
        # Right to left so earlier spans on the same line keep their columns
        for patch in sorted(patches, key=lambda p: (p.line, p.start), reverse=True):
            line = lines[patch.line]
            span = line[patch.start : patch.end]
            if patch.bounded:
                replaced, count = version_pattern(patch.old).subn(lambda _: patch.new, span)
            else:
                replaced, count = span.replace(patch.old, patch.new), span.count(patch.old)
            if not count:
                raise MalformedDocumentError(
                    f"expected {patch.old!r} at line {patch.line + 1}, found {span!r}"
                )
            lines[patch.line] = line[: patch.start] + replaced + line[patch.end :]
        return PackageDocument(self.path, lines)

    def __repr__(self) -> str:
        return f"PackageDocument(path={self.path!r}, lines={len(self.lines)})"
