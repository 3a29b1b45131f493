"""
Naming Rule: AsciiIdentifiers

Flags non-ascii characters in identifiers introduced by declarations:

    class Café; end
    def héllo(ärg, opt = 1, *rëst); end
    [1].each { |ïtem| }
    mañana = 1
    a, ö = 1, 2

Only declarations are checked; references are reported where they are
declared.
"""

from typing import Any, Iterator, List, Set

from engine.rule import RuleBase
from engine.source import Source
from engine.types import Issue, NodeRange, RuleMeta

NAMED_DECLARATIONS = frozenset(["class", "module", "method", "singleton_method"])

PARAMETER_LISTS = frozenset(["method_parameters", "block_parameters", "lambda_parameters"])

# Parameter kinds whose identifier lives in the ``name`` field
NAMED_PARAMETERS = frozenset([
    "optional_parameter",
    "keyword_parameter",
    "splat_parameter",
    "hash_splat_parameter",
    "block_parameter",
])

ASSIGNMENTS = frozenset(["assignment", "operator_assignment"])

VARIABLES = frozenset([
    "identifier",
    "constant",
    "instance_variable",
    "class_variable",
    "global_variable",
])


class AsciiIdentifiersRule(RuleBase):
    """Rule to detect non-ascii identifiers."""

    meta = RuleMeta(
        name="AsciiIdentifiers",
        group="Naming",
        description="Disallows non-ascii characters in identifiers",
    )

    MESSAGE = "Identifier contains non-ascii characters"

    def detect(self, source: Source) -> Iterator[Issue]:
        seen: Set[NodeRange] = set()
        for node in source.iter_nodes():
            if not node.is_named:
                continue
            for name_node in self._declared_names(node):
                key = (name_node.start_byte, name_node.end_byte)
                if key in seen:
                    continue
                seen.add(key)
                if not source.node_text(name_node).isascii():
                    yield self.issue_for_node(source, name_node, self.MESSAGE)

    def _declared_names(self, node: Any) -> List[Any]:
        if node.type in NAMED_DECLARATIONS:
            name = node.child_by_field_name("name")
            return [name] if name is not None else []

        if node.type in PARAMETER_LISTS:
            return [n for child in node.named_children for n in self._parameter_names(child)]

        if node.type in ASSIGNMENTS:
            return self._targets(node.child_by_field_name("left"))

        return []

    def _parameter_names(self, param: Any) -> List[Any]:
        if param.type == "identifier":
            return [param]
        if param.type in NAMED_PARAMETERS:
            name = param.child_by_field_name("name")
            return [name] if name is not None else []
        if param.type == "destructured_parameter":
            return [n for child in param.named_children for n in self._parameter_names(child)]
        return []

    def _targets(self, left: Any) -> List[Any]:
        if left is None:
            return []
        if left.type in VARIABLES:
            return [left]
        if left.type in ("left_assignment_list", "destructured_left_assignment", "rest_assignment"):
            return [n for child in left.named_children for n in self._targets(child)]
        return []
