"""
Compiler for Blade-style templates to PHP

Runs the fixed stage pipeline over a TemplateUnit:

    comment stripping -> relative path -> built-in rules (RULE_ORDER)
    -> extension handlers -> {!! !!} -> generic @name() calls
    -> {{ }} -> closing PHP tag

The generic passes are catch-alls and must run after every built-in rule
has consumed its own directives; running {{ }} or the generic call pass
earlier would capture built-in directive syntax.
"""

import re
from pathlib import PurePosixPath
from typing import Any, Callable, List, Mapping, Optional, Tuple

from ..models.directives import RewriteResult
from ..models.state import pipeline
from ..models.template import CompileOptions, TemplateUnit
from .directives import DirectiveRegistry, unit_rewrite
from .log import LOG


COMMENT = re.compile(r'\{\{--[\s\S]*?--\}\}')
RAW_OUTPUT = re.compile(r'\{!!\s*(.+?)\s*!!\}')
GENERIC_CALL = re.compile(r'@([A-Za-z_]+) ?\((.*)\)(?!.*\{)')
GENERIC_END = re.compile(r'@end([A-Za-z_]+)')
INTERPOLATION = re.compile(r'\{\{\s*(.+?)\s*\}\}')

PHP_OPEN = '<?php'
PHP_CLOSE = '?>'

Stage = Callable[[TemplateUnit], TemplateUnit]


def coalesce(expression: str) -> str:
    """Rewrite 'a or b' defaults into PHP null-coalescing 'a ?? b'"""
    return expression.replace(' or ', ' ?? ')


class Compiler:
    """
    Compiles template text into PHP source

    Responsibilities:
    - Fix the total order of rewrite stages
    - Strip comments before any rule runs
    - Derive the relative path used by include-emitting rules
    - Apply built-in rules, then caller-supplied extensions
    - Run the output and generic-call catch-all passes
    - Close an unterminated PHP code region

    A Compiler holds only configuration, so one instance may compile any
    number of units.
    """

    def __init__(
        self,
        options: Optional[CompileOptions] = None,
        registry: Optional[DirectiveRegistry] = None,
    ) -> None:
        """
        Initialize compiler

        Args:
            options: Per-invocation configuration (defaults from appsettings)
            registry: Built-in rule registry (defaults to DirectiveRegistry())
        """
        self.options = options or CompileOptions.settings_create()
        self.directives = registry or DirectiveRegistry()

    def compile(
        self,
        source: str,
        path: str = "",
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> TemplateUnit:
        """
        Compile template text to a PHP unit

        Args:
            source: Template text (front matter already removed)
            path: File path relative to the site root, used for include paths
            metadata: Page settings from front matter

        Returns:
            Compiled TemplateUnit; content is the PHP body, before/after hold
            section fragments
        """
        unit = TemplateUnit(content=source, path=path, metadata=dict(metadata or {}))
        LOG(f"Compiling {path or '<string>'} ({len(source)} characters)", level=2)
        return pipeline(unit, *self.stages_list())

    def stages_list(self) -> List[Stage]:
        """Compilation stages in their fixed order"""
        return [
            self.comments_strip,
            self.relativePath_assign,
            self.builtins_apply,
            self.extensions_apply,
            self.rawOutput_apply,
            self.genericCalls_apply,
            self.interpolation_apply,
            self.phpTag_close,
        ]

    def comments_strip(self, unit: TemplateUnit) -> TemplateUnit:
        """
        Remove {{-- ... --}} regions so nothing inside them can match

        Removing an inner comment can join the text around it into a new
        comment ("{{-{{-- a --}}- x --}}"), so passes repeat until none is
        left.
        """
        content = unit.content
        while True:
            content, count = COMMENT.subn('', content)
            if not count:
                return unit.evolve(content=content)

    @staticmethod
    def relativePath_derive(path: str) -> str:
        """
        Parent-directory chain from a file's directory back to the root

        Example:
            >>> Compiler.relativePath_derive("index.php")
            ''
            >>> Compiler.relativePath_derive("blog/post/index.php")
            '/../..'
        """
        parts = PurePosixPath(path.replace('\\', '/').lstrip('/')).parts
        depth = max(len(parts) - 1, 0)
        return '/..' * depth

    def relativePath_assign(self, unit: TemplateUnit) -> TemplateUnit:
        """Derive the unit's relative path once, before any rule runs"""
        return unit.evolve(relative_path=self.relativePath_derive(unit.path))

    def includePath_make(self, unit: TemplateUnit, name: str, directory: Optional[str] = None) -> str:
        """
        PHP expression for a file in one of the convention directories

        Args:
            unit: Unit whose relative path anchors the expression
            name: File name without extension, '/'-separated
            directory: Convention directory (defaults to the includes dir)

        Returns:
            e.g. dirname(__FILE__) . "/../_includes/card.php"
        """
        directory = directory or self.options.includes_dir
        return f'dirname(__FILE__) . "{unit.relative_path}/{directory}/{name}.php"'

    def rule_apply(self, name: str, unit: TemplateUnit) -> RewriteResult:
        """
        Apply a single built-in rule

        Raises:
            KeyError: if no rule has that name
        """
        handler = self.directives.get(name)
        if handler is None:
            raise KeyError(f"Unknown directive rule '{name}'")
        return handler(unit, self)

    def builtins_apply(self, unit: TemplateUnit) -> TemplateUnit:
        """Apply every built-in rule in RULE_ORDER"""
        for spec in self.directives.rules_ordered():
            result = spec.handler(unit, self)
            if result.matched:
                LOG(f"Rule '{spec.name}' rewrote {unit.path or '<string>'}", level=3)
            unit = result.unit
        return unit

    def extensions_apply(self, unit: TemplateUnit) -> TemplateUnit:
        """
        Apply caller-supplied directive handlers in mapping order

        Extensions run after all built-ins, so they only ever see built-in
        directives already resolved to PHP.
        """
        for name, handler in self.options.directives.items():
            if not callable(handler):
                LOG(f"Warning: directive extension '{name}' is not callable", level=2)
                continue
            result = RewriteResult.coerce(handler(unit, self), unit)
            if result.matched:
                LOG(f"Extension '{name}' rewrote {unit.path or '<string>'}", level=3)
            unit = result.unit
        return unit

    @staticmethod
    def rawOutput_rewrite(text: str) -> Tuple[str, int]:
        """{!! expr !!} -> unescaped echo"""
        return RAW_OUTPUT.subn(
            lambda match: f'<?php echo {coalesce(match.group(1))}; ?>', text
        )

    @staticmethod
    def genericCalls_rewrite(text: str) -> Tuple[str, int]:
        """
        Treat leftover @name(args) as boolean project functions

        A call followed on the same line by '{' is left alone (CSS at-rules
        such as @media). Every leftover @endname closes the conditional.
        """
        text, calls = GENERIC_CALL.subn(r'<?php if (\1(\2)) : ?>', text)
        text, ends = GENERIC_END.subn('<?php endif; ?>', text)
        return text, calls + ends

    def interpolation_rewrite(self, text: str) -> Tuple[str, int]:
        """{{ expr }} -> escaped (or raw) echo with an empty-string default"""
        def render(match: re.Match[str]) -> str:
            expression = coalesce(f'{match.group(1)} or ""')
            if self.options.safe_output is False:
                return f'<?php echo {expression}; ?>'
            return f"<?php echo htmlspecialchars({expression}, ENT_QUOTES, 'UTF-8', false); ?>"

        return INTERPOLATION.subn(render, text)

    def rawOutput_apply(self, unit: TemplateUnit) -> TemplateUnit:
        return unit_rewrite(unit, self.rawOutput_rewrite).unit

    def genericCalls_apply(self, unit: TemplateUnit) -> TemplateUnit:
        return unit_rewrite(unit, self.genericCalls_rewrite).unit

    def interpolation_apply(self, unit: TemplateUnit) -> TemplateUnit:
        return unit_rewrite(unit, self.interpolation_rewrite).unit

    def phpTag_close(self, unit: TemplateUnit) -> TemplateUnit:
        """
        Append '?>' when the last PHP region in the content is never closed

        Flat PHP files (plugins, data) usually open a region and leave it
        open; content that never opens one is returned unchanged.
        """
        content = unit.content
        last_open = content.rfind(PHP_OPEN)
        if last_open == -1 or content.rfind(PHP_CLOSE) > last_open:
            return unit
        return unit.evolve(content=content + PHP_CLOSE)
