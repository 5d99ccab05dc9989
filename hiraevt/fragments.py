"""Index of the fragments packed into an event-built ring item body."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

FRAGMENT_HEADER_BYTES = 20  # uint64 timestamp, uint32 source id, uint32 size, uint32 barrier
FRAGMENT_HEADER_WORDS = FRAGMENT_HEADER_BYTES // 2
RING_ITEM_HEADER_BYTES = 8  # uint32 size, uint32 type
_NO_BODY_HEADER_BYTES = 6


def _word(words: Sequence[int], index: int) -> int:
    if not 0 <= index < len(words):
        raise ValueError(f"fragment data truncated: no word at index {index}")
    return words[index]


def _uint(words: Sequence[int], offset: int, count: int) -> int:
    """Little-endian unsigned integer spread over ``count`` 16-bit words."""
    value = 0
    for shift, index in enumerate(range(offset, offset + count)):
        value |= _word(words, index) << (16 * shift)
    return value


def words_to_next_fragment(words: Sequence[int], offset: int) -> int:
    """Number of 16-bit words from the fragment at ``offset`` to the next one."""
    payload_size = _uint(words, offset + 6, 2)
    return (payload_size + FRAGMENT_HEADER_BYTES) // 2


@dataclass(frozen=True)
class FragmentInfo:
    """Condensed fragment description; item offsets are word indices into the indexed buffer."""

    timestamp: int
    source_id: int
    size: int
    barrier: int
    item_header: int
    item_body: int


class FragmentIndex:
    """Locates every complete fragment in a built ring item."""

    def __init__(self) -> None:
        self._fragments: list[FragmentInfo] = []

    @classmethod
    def from_body(cls, body: Sequence[int]) -> FragmentIndex:
        """Index a ring item body whose first longword is its size in bytes."""
        max_bytes = _uint(body, 0, 2)
        if max_bytes < 4:
            raise ValueError(f"body size {max_bytes} is smaller than its own size field")
        index = cls()
        start = 2
        index.index_fragments(body, start, start + (max_bytes - 4) // 2)
        return index

    def index_fragments(self, words: Sequence[int], start: int = 0, end: int | None = None) -> None:
        """Replace the index with the fragments found in ``words[start:end]``."""
        if end is None:
            end = len(words)
        self._fragments.clear()
        if start == end:
            return

        offset = start
        while True:
            dist = words_to_next_fragment(words, offset)
            if offset + dist > end:
                raise ValueError("insufficient data in buffer for next fragment")

            item_header = offset + FRAGMENT_HEADER_WORDS
            body_header_size = _word(words, item_header + 4)
            extra = body_header_size if body_header_size else _NO_BODY_HEADER_BYTES
            item_body = item_header + (RING_ITEM_HEADER_BYTES + extra) // 2

            self._fragments.append(
                FragmentInfo(
                    timestamp=_uint(words, offset, 4),
                    source_id=_uint(words, offset + 4, 2),
                    size=_uint(words, offset + 6, 2),
                    barrier=_uint(words, offset + 8, 2),
                    item_header=item_header,
                    item_body=item_body,
                )
            )
            offset += dist
            if offset >= end:
                break

    def get_fragment(self, index: int) -> FragmentInfo | None:
        """The fragment at ``index``, or None when there is no such fragment."""
        if 0 <= index < len(self._fragments):
            return self._fragments[index]
        return None

    def __len__(self) -> int:
        return len(self._fragments)

    def __iter__(self) -> Iterator[FragmentInfo]:
        return iter(self._fragments)