"""
Rule specification and rewrite result models

Defines the structure and categories of template directive rules for
registry management, ordering and documentation.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Callable, List

from .template import TemplateUnit


class RuleCategory(Enum):
    """
    Categories of directive rules

    Used for organization and documentation generation.
    """
    CONDITIONAL = "conditional"  # @if, @elseif, @else, @unless, @empty
    LOOP = "loop"                # @for, @foreach, @while
    CONTROL = "control"          # @break, @continue
    PAGE = "page"                # @set
    COMPOSITION = "composition"  # @include, @component, @section, @yield
    STACK = "stack"              # @push, @stack


@dataclass(frozen=True)
class RewriteResult:
    """
    Outcome of applying one rule to a unit

    Distinguishes "matched and rewrote" from the explicit "no match" variant,
    in which the unit comes back unchanged.

    Attributes:
        unit: Resulting template unit
        matched: Whether the rule found (and rewrote) at least one directive
    """
    unit: TemplateUnit
    matched: bool

    @classmethod
    def unmatched(cls, unit: TemplateUnit) -> "RewriteResult":
        """No-match result carrying the untouched unit"""
        return cls(unit=unit, matched=False)

    @classmethod
    def coerce(cls, value: Any, original: TemplateUnit) -> "RewriteResult":
        """
        Normalize an extension handler's return value.

        Extensions may return either a TemplateUnit or a RewriteResult.

        Raises:
            TypeError: if the value is neither
        """
        if isinstance(value, RewriteResult):
            return value
        if isinstance(value, TemplateUnit):
            return cls(unit=value, matched=value != original)
        raise TypeError(
            f"Directive handlers must return TemplateUnit or RewriteResult, got {type(value).__name__}"
        )


@dataclass
class RuleSpec:
    """
    Specification for a built-in directive rule

    Attributes:
        name: Rule name (also its slot in the fixed application order)
        category: Category for organization
        description: Human-readable description
        handler: Rewrite function (unit, compiler) -> RewriteResult
        triggers: Directive names this rule consumes (without '@')
        examples: Example usage strings
    """
    name: str
    category: RuleCategory
    description: str
    handler: Callable[[TemplateUnit, Any], RewriteResult]
    triggers: List[str] = field(default_factory=list)
    examples: List[str] = field(default_factory=list)

    def handles(self, directive_name: str) -> bool:
        """Check whether this rule consumes the given directive name"""
        return directive_name == self.name or directive_name in self.triggers
