"""
Source files under inspection.

A Source owns the original text, the current (possibly corrected) text,
the syntax tree parsed from the current text, and the issues found in it.
"""

import bisect
from typing import Any, Iterable, List, Optional

from .file_filter import path_matches
from .types import Issue, LanguageAdapter, Location, ParseFailure


class Source:
    """A unit of source code to inspect and, optionally, correct.

    The tree is always consistent with ``code``: assigning new text drops the
    tree, and the next access re-parses it.
    """

    def __init__(self, code: str, path: Optional[str] = None,
                 adapter: Optional[LanguageAdapter] = None):
        if adapter is None:
            from .ruby_adapter import default_ruby_adapter
            adapter = default_ruby_adapter

        self.path = path
        self.adapter = adapter
        self._original_code = code
        self._code = code
        self._bytes: Optional[bytes] = None
        self._line_starts: Optional[List[int]] = None
        self._tree: Any = None
        self._parsed = False
        self._syntax_error: Optional[ParseFailure] = None
        self.issues: List[Issue] = []
        self.autocorrect = False

    def __repr__(self) -> str:
        return f"Source({self.path or '<memory>'}, issues={len(self.issues)})"

    # --- text -------------------------------------------------------------

    @property
    def original_code(self) -> str:
        return self._original_code

    @property
    def code(self) -> str:
        return self._code

    @code.setter
    def code(self, value: str) -> None:
        self._code = value
        self._bytes = None
        self._line_starts = None
        self._tree = None
        self._parsed = False
        self._syntax_error = None

    @property
    def code_bytes(self) -> bytes:
        if self._bytes is None:
            self._bytes = self._code.encode('utf-8')
        return self._bytes

    @property
    def is_corrected(self) -> bool:
        """Whether the current text differs from the original."""
        return self._code != self._original_code

    @property
    def lines(self) -> List[str]:
        return self._code.split('\n')

    # --- parsing ----------------------------------------------------------

    def reparse(self) -> None:
        """Parse the current text, replacing any previous tree."""
        self._tree = self.adapter.parse(self.code_bytes)
        self._syntax_error = self.adapter.syntax_error(self._tree)
        self._parsed = True

    @property
    def tree(self) -> Any:
        if not self._parsed:
            self.reparse()
        return self._tree

    @property
    def root(self) -> Any:
        tree = self.tree
        return tree.root_node if tree is not None else None

    @property
    def syntax_error(self) -> Optional[ParseFailure]:
        if not self._parsed:
            self.reparse()
        return self._syntax_error

    @property
    def valid_syntax(self) -> bool:
        return self.syntax_error is None

    def iter_nodes(self, node: Any = None) -> Iterable[Any]:
        """Walk the tree (or the subtree under ``node``) in document order."""
        start = node if node is not None else self.root
        if start is None:
            return iter(())
        return self.adapter.iter_nodes(start)

    # --- positions --------------------------------------------------------

    def _starts(self) -> List[int]:
        if self._line_starts is None:
            starts = [0]
            data = self.code_bytes
            index = data.find(b'\n')
            while index != -1:
                starts.append(index + 1)
                index = data.find(b'\n', index + 1)
            self._line_starts = starts
        return self._line_starts

    def location_at(self, byte: int) -> Location:
        """Convert a byte offset to a 1-based line and character column."""
        data = self.code_bytes
        byte = max(0, min(byte, len(data)))
        starts = self._starts()
        line_index = bisect.bisect_right(starts, byte) - 1
        line_start = starts[line_index]
        column = len(data[line_start:byte].decode('utf-8', errors='ignore')) + 1
        return Location(line_index + 1, column)

    def byte_offset(self, line: int, column: int) -> int:
        """Convert a 1-based line and character column to a byte offset."""
        starts = self._starts()
        if line < 1:
            return 0
        if line > len(starts):
            return len(self.code_bytes)
        text_line = self.lines[line - 1]
        prefix = text_line[:max(column - 1, 0)]
        return starts[line - 1] + len(prefix.encode('utf-8'))

    def slice(self, start_byte: int, end_byte: int) -> str:
        """Text between two byte offsets."""
        return self.code_bytes[start_byte:end_byte].decode('utf-8', errors='replace')

    def node_text(self, node: Any) -> str:
        return self.slice(node.start_byte, node.end_byte)

    # --- paths ------------------------------------------------------------

    def matches_path(self, patterns: Optional[Iterable[str]]) -> bool:
        """Whether this source's path matches any exclusion pattern."""
        return path_matches(self.path, patterns)
