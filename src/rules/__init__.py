"""
Autolint Rules Package

This package contains the rules that analyze Ruby-family source for issues.
Rules are listed explicitly in RULE_CLASSES; nothing registers itself on
import. The engine builds its registry from this list at startup.

To add a new rule:
1. Create a Python file in this directory (e.g., style_my_rule.py)
2. Subclass engine.rule.RuleBase, set ``meta`` and implement ``detect``
   (and ``correct`` when ``meta.correctable`` is set)
3. Add the class to RULE_CLASSES below

Example rule structure:

```python
from engine.rule import RuleBase
from engine.types import RuleMeta

class MyRule(RuleBase):
    meta = RuleMeta(
        name="MyRule",
        group="Style",
        description="Detects my specific issue",
    )

    def detect(self, source):
        for node in source.iter_nodes():
            if node.type == "nil":
                yield self.issue_for_node(source, node, "Found an issue")
```
"""

from typing import List, Type

from engine.rule import RuleBase

from .layout_trailing_whitespace import TrailingWhitespaceRule
from .lint_empty_expression import EmptyExpressionRule
from .lint_syntax import SyntaxRule
from .naming_ascii_identifiers import AsciiIdentifiersRule
from .style_redundant_parentheses import RedundantParenthesesRule

# Lint/Syntax first: the runner treats it specially
RULE_CLASSES: List[Type[RuleBase]] = [
    SyntaxRule,
    EmptyExpressionRule,
    RedundantParenthesesRule,
    AsciiIdentifiersRule,
    TrailingWhitespaceRule,
]

__all__ = [
    "RULE_CLASSES",
    "SyntaxRule",
    "EmptyExpressionRule",
    "RedundantParenthesesRule",
    "AsciiIdentifiersRule",
    "TrailingWhitespaceRule",
]
