from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from graphpatch.errors import InvalidPathError

APPEND_TOKEN = "-"

_INDEX_RE = re.compile(r"^(0|[1-9][0-9]*)$")


def _decode_segment(seg: str) -> str:
    return seg.replace("~1", "/").replace("~0", "~")


def _encode_segment(seg: str) -> str:
    return seg.replace("~", "~0").replace("/", "~1")


def parse_index(segment: str) -> Optional[int]:
    """Return the sequence index a segment denotes, or None if it is not one."""
    if _INDEX_RE.match(segment) is None:
        return None
    return int(segment)


@dataclass(frozen=True)
class Path:
    """A parsed JSON Pointer. The empty tuple addresses the root."""

    segments: tuple[str, ...]

    @classmethod
    def parse(cls, pointer: str) -> "Path":
        if not isinstance(pointer, str):
            raise InvalidPathError(f"path must be a string, got {type(pointer).__name__}")
        return _parse_cached(pointer)

    @property
    def is_root(self) -> bool:
        return not self.segments

    @property
    def last(self) -> str:
        if not self.segments:
            raise InvalidPathError("the root path has no final segment", path="")
        return self.segments[-1]

    @property
    def parent(self) -> "Path":
        if not self.segments:
            raise InvalidPathError("the root path has no parent", path="")
        return Path(self.segments[:-1])

    @property
    def ends_with_append(self) -> bool:
        return bool(self.segments) and self.segments[-1] == APPEND_TOKEN

    def child(self, segment: str) -> "Path":
        return Path(self.segments + (segment,))

    def is_proper_prefix_of(self, other: "Path") -> bool:
        n = len(self.segments)
        return n < len(other.segments) and other.segments[:n] == self.segments

    def __str__(self) -> str:
        return "".join("/" + _encode_segment(s) for s in self.segments)


@lru_cache(maxsize=1024)
def _parse_cached(pointer: str) -> Path:
    if pointer == "":
        return Path(())
    if not pointer.startswith("/"):
        raise InvalidPathError("path must start with '/'", path=pointer)
    return Path(tuple(_decode_segment(p) for p in pointer.split("/")[1:]))
