"""
bladerunner - Blade-style template to PHP compiler

Compiles pages written with @directives, {{ }} output tags, components,
sections and stacks into self-contained PHP programs.
"""

__version__ = "1.0.0"

from .lib import Compiler, DirectiveRegistry, PageAssembler, FrontMatterError, LOG, state_connectToLogger
from .models import CompileOptions, TemplateUnit, RewriteResult

__all__ = [
    "Compiler",
    "DirectiveRegistry",
    "PageAssembler",
    "FrontMatterError",
    "CompileOptions",
    "TemplateUnit",
    "RewriteResult",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
