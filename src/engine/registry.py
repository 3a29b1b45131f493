"""
Registry of known rule classes.

The registry is built explicitly at startup from a static list of rule
classes and handed to the configuration layer, which instantiates the
rules; nothing registers itself on import.
"""

import logging
from typing import Dict, Iterable, List, Optional, Type

from .rule import RuleBase

logger = logging.getLogger(__name__)


class Registry:
    """Index of rule classes by full name and by group."""

    def __init__(self, rule_classes: Iterable[Type[RuleBase]] = ()):
        self._rules: List[Type[RuleBase]] = []
        self._rule_index: Dict[str, Type[RuleBase]] = {}  # full name -> class
        for rule_class in rule_classes:
            self.register_rule(rule_class)

    def register_rule(self, rule_class: Type[RuleBase]) -> None:
        """Register a rule class; duplicate names are ignored."""
        full_name = rule_class.meta.full_name
        if full_name in self._rule_index:
            logger.debug(f"Rule {full_name} already registered")
            return

        self._rules.append(rule_class)
        self._rule_index[full_name] = rule_class

    def get_rule(self, name: str) -> Optional[Type[RuleBase]]:
        """Get a rule class by full name (``Lint/Syntax``) or bare name (``Syntax``)."""
        if name in self._rule_index:
            return self._rule_index[name]
        for rule_class in self._rules:
            if rule_class.meta.name == name:
                return rule_class
        return None

    def get_all_rules(self) -> List[Type[RuleBase]]:
        """Get all registered rule classes, in registration order."""
        return self._rules.copy()

    def get_groups(self) -> Dict[str, List[Type[RuleBase]]]:
        """Rule classes grouped by group name."""
        groups: Dict[str, List[Type[RuleBase]]] = {}
        for rule_class in self._rules:
            groups.setdefault(rule_class.meta.group, []).append(rule_class)
        return groups


def build_registry(rule_classes: Optional[Iterable[Type[RuleBase]]] = None) -> Registry:
    """Build a registry from ``rule_classes`` (default: every shipped rule)."""
    if rule_classes is None:
        from rules import RULE_CLASSES
        rule_classes = RULE_CLASSES
    return Registry(rule_classes)
