"""
Models package for bladerunner

Contains data structures and type definitions for the compilation pipeline.
"""

from .state import ProgramState, pipeline
from .template import TemplateUnit, DirectiveMatch, CompileOptions, CompiledPage
from .directives import RuleSpec, RuleCategory, RewriteResult

__all__ = [
    "ProgramState",
    "pipeline",
    "TemplateUnit",
    "DirectiveMatch",
    "CompileOptions",
    "CompiledPage",
    "RuleSpec",
    "RuleCategory",
    "RewriteResult",
]
