"""
Ruby-family language adapter for tree-sitter.

Parses `.rb` and `.cr` sources with the tree-sitter-ruby grammar. Tree-sitter
never raises on malformed input; it inserts ERROR and MISSING nodes instead,
which `syntax_error` turns into a structured parse failure.
"""
import logging
import threading
from typing import Any, Iterator, List, Optional, Tuple

import tree_sitter
import tree_sitter_ruby

from .types import LanguageAdapter, ParseFailure

logger = logging.getLogger(__name__)


class RubyAdapter(LanguageAdapter):
    """Tree-sitter adapter for Ruby-family languages."""

    def __init__(self):
        """Initialize the adapter; the parser is created lazily."""
        self._parser = None
        # tree-sitter parsers are not safe to share between threads
        self._lock = threading.Lock()

    @property
    def language_id(self) -> str:
        """Return the language identifier."""
        return "ruby"

    @property
    def file_extensions(self) -> Tuple[str, ...]:
        """Return supported file extensions."""
        return (".rb", ".cr")

    def _get_parser(self) -> tree_sitter.Parser:
        """Get or create the tree-sitter parser."""
        if self._parser is None:
            ruby_language = tree_sitter.Language(tree_sitter_ruby.language())
            parser = tree_sitter.Parser()
            parser.language = ruby_language
            self._parser = parser
            logger.debug("Ruby parser initialized")
        return self._parser

    def parse(self, text) -> Any:
        """Parse text and return a Tree-sitter tree."""
        # Handle both string and bytes input
        if isinstance(text, str):
            text_bytes = text.encode('utf-8')
        else:
            text_bytes = text

        with self._lock:
            return self._get_parser().parse(text_bytes)

    def syntax_error(self, tree: Any) -> Optional[ParseFailure]:
        """Return the first ERROR or MISSING node as a parse failure."""
        if tree is None:
            return ParseFailure("source could not be parsed", 0, 0)

        root = tree.root_node
        if not root.has_error:
            return None

        for node in self.iter_nodes(root):
            if node.is_missing:
                return ParseFailure(f"expecting '{node.type}'", node.start_byte, node.end_byte)
            if node.type == "ERROR":
                return ParseFailure(self._unexpected_message(node), node.start_byte, node.end_byte)

        # has_error without a visible culprit; report at the root
        return ParseFailure("invalid syntax", root.start_byte, root.end_byte)

    def _unexpected_message(self, error_node: Any) -> str:
        """Describe the first token tree-sitter could not place."""
        token = error_node
        while token.children:
            token = token.children[0]
        text = (token.text or b"").decode('utf-8', errors='replace').strip()
        if not text:
            return "unexpected end of input"
        if len(text) > 20:
            text = text[:20] + "..."
        return f"unexpected token '{text}'"

    def iter_nodes(self, node: Any) -> Iterator[Any]:
        """Walk all nodes under ``node`` (inclusive) in document order."""
        stack: List[Any] = [node]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(current.children))

    def is_comment(self, node: Any) -> bool:
        """Whether ``node`` is a comment."""
        return node.type == "comment"


default_ruby_adapter = RubyAdapter()
