"""
Lazy sequence replacement.

Replacer pulls items from any iterator and yields them unchanged, except that
every exact, leftmost, non-overlapping occurrence of `pattern` is replaced by
`replacement`. It looks ahead exactly len(pattern) items, nothing more.

Once the source is exhausted it is dropped and never asked again. That is
what lets a short tail through: replacing [1, 2, 3] in [1, 2, 3, 1, 2] yields
the trailing [1, 2] as soon as the source runs dry, instead of waiting for a
3 that may never come.

    >>> list(Replacer([0, 1, 2, 3, 4], [1, 2, 3], [6]))
    [0, 6, 4]
    >>> bytes(Replacer(b'say "hi"', b'"', b'\\\\"'))
    b'say \\\\"hi\\\\"'

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

from collections import deque
from enum import Enum
from typing import Any, Iterable, Iterator, Optional, Sequence


class ReplacerState(Enum):
    SEARCHING = "searching"
    SUBSTITUTING = "substituting"


class Replacer:
    """Iterator replacing `pattern` with `replacement` in `source`.

    Raises ValueError straight away if `pattern` is empty.
    """

    def __init__(self, source: Iterable, pattern: Sequence, replacement: Sequence):
        pattern = tuple(pattern)
        if not pattern:
            raise ValueError("the pattern to replace cannot be empty")
        self._source: Optional[Iterator] = iter(source)
        self._pattern = pattern
        self._replacement = tuple(replacement)
        self._window: deque = deque(maxlen=len(pattern))
        self._state = ReplacerState.SEARCHING
        self._position = 0

    def __iter__(self) -> "Replacer":
        return self

    def __next__(self) -> Any:
        while True:
            if self._state is ReplacerState.SUBSTITUTING:
                if self._position < len(self._replacement):
                    item = self._replacement[self._position]
                    self._position += 1
                    return item
                self._state = ReplacerState.SEARCHING

            self._fill_window()

            if len(self._window) == len(self._pattern) and tuple(self._window) == self._pattern:
                self._window.clear()
                self._state = ReplacerState.SUBSTITUTING
                self._position = 0
                continue

            if self._window:
                return self._window.popleft()
            raise StopIteration

    def _fill_window(self):
        if self._source is None:
            return
        while len(self._window) < len(self._pattern):
            try:
                item = next(self._source)
            except StopIteration:
                self._source = None
                return
            self._window.append(item)
