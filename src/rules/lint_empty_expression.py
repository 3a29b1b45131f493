"""
Lint Rule: EmptyExpression

Detects empty expressions: `()` with nothing inside, and `begin ... end`
blocks without a body or holding only `nil`.

    a = ()
    if (); end
    begin; end
    begin nil end
"""

from typing import Any, Iterator

from engine.rule import RuleBase
from engine.source import Source
from engine.types import Issue, RuleMeta


class EmptyExpressionRule(RuleBase):
    """Rule to detect empty expressions."""

    meta = RuleMeta(
        name="EmptyExpression",
        group="Lint",
        description="Disallows empty expressions",
    )

    MESSAGE = "Avoid empty expressions"

    def detect(self, source: Source) -> Iterator[Issue]:
        for node in source.iter_nodes():
            # Keyword tokens share their node's type name ("begin"); only named nodes count
            if not node.is_named:
                continue
            if node.type in ("parenthesized_statements", "begin") and self._is_empty(source, node):
                yield self.issue_for_node(source, node, self.MESSAGE)

    def _is_empty(self, source: Source, node: Any) -> bool:
        body = [c for c in node.named_children if not source.adapter.is_comment(c)]
        if not body:
            return True
        # `begin nil end` has no value of its own either
        return node.type == "begin" and len(body) == 1 and body[0].type == "nil"
