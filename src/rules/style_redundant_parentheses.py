"""
Style Rule: RedundantParentheses

Detects parentheses around the condition of a control expression, where
they add nothing:

    if (foo > 10)        # => if foo > 10
    while (queue.any?)   # => while queue.any?
    case (foo = @foo)    # => case foo = @foo

Ternary conditions are skipped by default (`ExcludeTernary`); when checked,
conditions built from `&&`, `||`, `and`, `or` are still left alone.
Parenthesised assignments are reported unless `ExcludeAssignments` is set.
"""

from typing import Any, Iterator, Optional

from pydantic import Field

from engine.rule import RuleBase, RuleConfig
from engine.source import Source
from engine.types import Edit, Issue, RuleMeta

# node type -> field holding the condition
CONTROL_CONDITIONS = {
    "if": "condition",
    "elsif": "condition",
    "unless": "condition",
    "while": "condition",
    "until": "condition",
    "if_modifier": "condition",
    "unless_modifier": "condition",
    "while_modifier": "condition",
    "until_modifier": "condition",
    "case": "value",
}

TERNARY = "conditional"

ASSIGNMENTS = frozenset(["assignment", "operator_assignment"])
LOGICAL_OPERATORS = frozenset(["&&", "||", "and", "or"])


class RedundantParenthesesConfig(RuleConfig):
    exclude_ternary: bool = Field(default=True, alias="ExcludeTernary")
    exclude_assignments: bool = Field(default=False, alias="ExcludeAssignments")


class RedundantParenthesesRule(RuleBase):
    """Rule to detect redundant parentheses around conditions."""

    meta = RuleMeta(
        name="RedundantParentheses",
        group="Style",
        description="Disallows redundant parentheses around control expressions",
        correctable=True,
    )

    config_model = RedundantParenthesesConfig

    MESSAGE = "Redundant parentheses"

    def detect(self, source: Source) -> Iterator[Issue]:
        for node in source.iter_nodes():
            if not node.is_named:
                continue

            if node.type in CONTROL_CONDITIONS:
                condition = node.child_by_field_name(CONTROL_CONDITIONS[node.type])
                ternary = False
            elif node.type == TERNARY:
                condition = node.child_by_field_name("condition")
                ternary = True
            else:
                continue

            if self._is_redundant(source, condition, ternary):
                yield self.issue_for_node(source, condition, self.MESSAGE)

    def _is_redundant(self, source: Source, condition: Optional[Any], ternary: bool) -> bool:
        """Whether the parentheses around ``condition`` can be dropped."""
        if condition is None or condition.type != "parenthesized_statements":
            return False

        statements = [c for c in condition.named_children if not source.adapter.is_comment(c)]
        if len(statements) != 1:
            return False
        expression = statements[0]

        if expression.type in ASSIGNMENTS:
            # Unwrapping an assignment in a ternary would rebind the whole ternary
            if ternary or self.config.exclude_assignments:
                return False

        if ternary:
            if self.config.exclude_ternary:
                return False
            if expression.type == "binary":
                operator = expression.child_by_field_name("operator")
                if operator is not None and operator.type in LOGICAL_OPERATORS:
                    return False

        return True

    def correct(self, source: Source, issue: Issue) -> Optional[Edit]:
        data = source.code_bytes
        if data[issue.start_byte:issue.start_byte + 1] != b"(" or data[issue.end_byte - 1:issue.end_byte] != b")":
            return None

        # Drop only the parentheses; comments and line breaks inside stay
        replacement = source.slice(issue.start_byte + 1, issue.end_byte - 1)

        before = data[issue.start_byte - 1:issue.start_byte] if issue.start_byte > 0 else b" "
        after = data[issue.end_byte:issue.end_byte + 1]
        # Keep keywords and operands from fusing: `if(x)` -> `if x`
        if not before.isspace() and not replacement[:1].isspace():
            replacement = " " + replacement
        if after and not after.isspace() and after != b";" and not replacement[-1:].isspace():
            replacement = replacement + " "

        return Edit(issue.start_byte, issue.end_byte, replacement)
