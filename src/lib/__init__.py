"""
bladerunner - Blade-style template to PHP compiler

Directive rewriting engine, page assembly and supporting utilities.
"""

__version__ = "1.0.0"

from .compiler import Compiler
from .directives import DirectiveRegistry, RULE_ORDER
from .page import PageAssembler, FrontMatterError
from .log import LOG, state_connectToLogger

__all__ = [
    "Compiler",
    "DirectiveRegistry",
    "RULE_ORDER",
    "PageAssembler",
    "FrontMatterError",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
