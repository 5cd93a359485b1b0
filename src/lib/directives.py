"""
Directive rule implementations for bladerunner

Each rule rewrites one directive family in a TemplateUnit into PHP and
returns a RewriteResult. Rules are registered in a DirectiveRegistry with
RuleSpec metadata; the compiler applies them in RULE_ORDER.

Emitted PHP never contains an '@name' token, so no rule can re-match the
output of an earlier one.
"""

import re
from typing import Callable, Dict, List, Optional, Pattern, Tuple, Any

from ..models.directives import RuleSpec, RuleCategory, RewriteResult
from ..models.template import TemplateUnit, DirectiveMatch
from .regions import (
    PairedRegion,
    arguments_scan,
    arguments_split,
    name_unquote,
    literal_requote,
)


# Fixed application order of the built-in rules. Generic @if must run after
# the more specific @elseif/@else, and @section must remove its spans before
# the later passes look for stray @end tags.
RULE_ORDER: List[str] = [
    "break", "component", "continue", "else", "elseif",
    "empty", "for", "foreach", "set", "if", "include",
    "push", "section", "stack", "unless", "while", "yield",
]

Substitution = Tuple[Pattern[str], Any]
TextRewrite = Callable[[str], Tuple[str, int]]


def substitutions_apply(text: str, substitutions: List[Substitution]) -> Tuple[str, int]:
    """
    Apply (pattern, replacement) pairs in order.

    Returns:
        Tuple of (rewritten text, total number of substitutions)
    """
    total = 0
    for pattern, replacement in substitutions:
        text, count = pattern.subn(replacement, text)
        total += count
    return text, total


def unit_rewrite(unit: TemplateUnit, rewrite: TextRewrite) -> RewriteResult:
    """
    Apply a text rewrite to a unit's content and its before/after fragments.

    Fragments are rewritten too so that section bodies moved into 'before'
    still receive every rule that runs after @section.

    Args:
        unit: Unit to rewrite
        rewrite: Function text -> (new text, match count)

    Returns:
        RewriteResult; unmatched (same unit) when nothing was rewritten
    """
    content, total = rewrite(unit.content)

    before: List[str] = []
    for fragment in unit.before:
        fragment, count = rewrite(fragment)
        before.append(fragment)
        total += count

    after: List[str] = []
    for fragment in unit.after:
        fragment, count = rewrite(fragment)
        after.append(fragment)
        total += count

    if not total:
        return RewriteResult.unmatched(unit)

    return RewriteResult(
        unit=unit.evolve(content=content, before=tuple(before), after=tuple(after)),
        matched=True,
    )


def substitution_rule(*substitutions: Substitution) -> Callable[[TemplateUnit, Any], RewriteResult]:
    """Factory for rules that are plain ordered regex substitutions"""
    def handler(unit: TemplateUnit, compiler: Any) -> RewriteResult:
        return unit_rewrite(unit, lambda text: substitutions_apply(text, list(substitutions)))
    return handler


def loop_rewrite(unit: TemplateUnit, token: str, plain_form: bool) -> RewriteResult:
    """
    Shared algorithm for @for, @foreach and @while.

    The "source as binding" clause is carried verbatim into PHP's alternate
    loop syntax:

        @foreach($items as $key => $item)  ->  <?php foreach ($items as $key => $item) : ?>
        @endforeach                        ->  <?php endforeach; ?>

    When plain_form is set, calls without a binding keep their arguments as
    the loop header (@while($row = next($rows)) -> <?php while ($row = next($rows)) : ?>).
    Otherwise they are left untouched.

    The emitted loop is expected to run with a $loop helper available at
    PHP runtime:

        $loop->index     :: Index of the current iteration (starts at 0)
        $loop->iteration :: Current iteration (starts at 1)
        $loop->remaining :: Iterations remaining in the loop
        $loop->count     :: Total number of items being iterated
        $loop->first     :: Whether this is the first iteration
        $loop->last      :: Whether this is the last iteration

    Args:
        unit: Unit to rewrite
        token: Loop keyword ("for", "foreach", "while")
        plain_form: Accept calls without an 'as' binding

    Returns:
        RewriteResult for the loop family member
    """
    substitutions: List[Substitution] = [
        (re.compile(rf'@{token} ?\((.*?) as (.*?)\)'), rf'<?php {token} (\1 as \2) : ?>'),
    ]
    if plain_form:
        substitutions.append(
            (re.compile(rf'@{token} ?\((.*)\)'), rf'<?php {token} (\1) : ?>')
        )
    # @endfor must not eat the prefix of @endforeach
    substitutions.append(
        (re.compile(rf'@end{token}(?![A-Za-z_])'), f'<?php end{token}; ?>')
    )

    return unit_rewrite(unit, lambda text: substitutions_apply(text, substitutions))


# Single-line forms take a name followed by a comma; block forms take only
# a name, so the two shapes never overlap.
SLOT_INLINE = re.compile(r'@slot ?\(\s*([^(),\n]+?)\s*, ?(.*)\)')
PUSH_INLINE = re.compile(r'@push ?\(\s*([^(),\n]+?)\s*, ?(.*)\)')
INCLUDE_CALL = re.compile(r'@include ?\(')

COMPONENTS = PairedRegion("component", multiple=False)
SLOTS = PairedRegion("slot")
SECTIONS = PairedRegion("section")
PUSHES = PairedRegion("push")


class DirectiveRegistry:
    """
    Registry of built-in directive rules

    Maps rule names to RuleSpec objects holding metadata and handlers, and
    exposes them in the fixed application order.
    """

    def __init__(self) -> None:
        """Initialize the registry and register all built-in rules"""
        self.specs: Dict[str, RuleSpec] = {}
        self.controlDirectives_register()
        self.conditionalDirectives_register()
        self.loopDirectives_register()
        self.pageDirectives_register()
        self.compositionDirectives_register()
        self.stackDirectives_register()

    def register(self, spec: RuleSpec) -> None:
        """Register a rule specification"""
        self.specs[spec.name] = spec

    def get(self, name: str) -> Optional[Callable[[TemplateUnit, Any], RewriteResult]]:
        """
        Get rule handler by name

        Args:
            name: Rule name to look up

        Returns:
            Handler function or None if not found
        """
        spec = self.specs.get(name)
        return spec.handler if spec else None

    def spec_get(self, name: str) -> Optional[RuleSpec]:
        """Get the rule specification consuming a directive name"""
        if name in self.specs:
            return self.specs[name]

        for spec in self.specs.values():
            if spec.handles(name):
                return spec

        return None

    def rules_listByCategory(self, category: RuleCategory) -> list[RuleSpec]:
        """Get all rules in a category"""
        return [spec for spec in self.specs.values() if spec.category == category]

    def rules_ordered(self) -> list[RuleSpec]:
        """
        Rules in application order

        Raises:
            KeyError: if a rule named in RULE_ORDER was never registered
        """
        return [self.specs[name] for name in RULE_ORDER]

    def controlDirectives_register(self) -> None:
        """Register loop control directives"""

        for keyword in ("break", "continue"):
            self.register(RuleSpec(
                name=keyword,
                category=RuleCategory.CONTROL,
                description=f'Loop {keyword}, optionally guarded by a condition',
                handler=substitution_rule(
                    (re.compile(rf'@{keyword} ?\((.*)\)'), rf'<?php if (\1) {{ {keyword}; }} ?>'),
                    (re.compile(rf'@{keyword}(?![A-Za-z_])'), f'<?php {keyword}; ?>'),
                ),
                examples=[f'@{keyword}', f'@{keyword}($loop->last)'],
            ))

    def conditionalDirectives_register(self) -> None:
        """
        Register conditional directives

        Open and close tags are rewritten independently; mismatched nesting
        is not detected.
        """

        endif = '<?php endif; ?>'

        self.register(RuleSpec(
            name='else',
            category=RuleCategory.CONDITIONAL,
            description='Else branch (@else alone at the end of a line)',
            handler=substitution_rule(
                (re.compile(r'@else(?=[ \t\r]*(?:\n|\Z))'), '<?php else : ?>'),
            ),
            examples=['@if($user)\nHi\n@else\nGuest\n@endif'],
        ))

        self.register(RuleSpec(
            name='elseif',
            category=RuleCategory.CONDITIONAL,
            description='Else-if branch with a condition',
            handler=substitution_rule(
                (re.compile(r'@elseif ?\((.*)\)'), r'<?php elseif (\1) : ?>'),
            ),
            examples=['@elseif($count > 1)'],
        ))

        self.register(RuleSpec(
            name='empty',
            category=RuleCategory.CONDITIONAL,
            description='Branch taken when a value is empty or falsy',
            handler=substitution_rule(
                (re.compile(r'@empty ?\((.*)\)'), r'<?php if (empty(\1) || !(\1)) : ?>'),
                (re.compile(r'@endempty(?![A-Za-z_])'), endif),
            ),
            triggers=['endempty'],
            examples=['@empty($posts)\nNo posts yet\n@endempty'],
        ))

        self.register(RuleSpec(
            name='if',
            category=RuleCategory.CONDITIONAL,
            description='Conditional block',
            handler=substitution_rule(
                (re.compile(r'@if ?\((.*)\)'), r'<?php if (\1) : ?>'),
                (re.compile(r'@endif(?![A-Za-z_])'), endif),
            ),
            triggers=['endif'],
            examples=['@if($page->draft)\nDraft\n@endif'],
        ))

        self.register(RuleSpec(
            name='unless',
            category=RuleCategory.CONDITIONAL,
            description='Negated conditional block',
            handler=substitution_rule(
                (re.compile(r'@unless ?\((.*)\)'), r'<?php if (!(\1)) : ?>'),
                (re.compile(r'@endunless(?![A-Za-z_])'), endif),
            ),
            triggers=['endunless'],
            examples=['@unless($user)\nPlease sign in\n@endunless'],
        ))

    def loopDirectives_register(self) -> None:
        """Register loop directives (shared loop_rewrite algorithm)"""

        loops = [
            ('for', True, 'For loop', ['@for($i = 0; $i < 3; $i++)\n{{ $i }}\n@endfor']),
            ('foreach', False, 'Foreach loop over "source as binding"',
             ['@foreach($items as $item)\n{{ $item }}\n@endforeach']),
            ('while', True, 'While loop', ['@while($row = next($rows))\n{{ $row }}\n@endwhile']),
        ]

        for token, plain_form, description, examples in loops:
            self.register(RuleSpec(
                name=token,
                category=RuleCategory.LOOP,
                description=description,
                handler=lambda unit, compiler, token=token, plain_form=plain_form: loop_rewrite(
                    unit, token, plain_form
                ),
                triggers=[f'end{token}'],
                examples=examples,
            ))

    def pageDirectives_register(self) -> None:
        """Register page property directives"""

        self.register(RuleSpec(
            name='set',
            category=RuleCategory.PAGE,
            description='Set or override a page property',
            handler=substitution_rule(
                (re.compile(r'@set ?\(["\'](.*?)["\'], ?(.*)\)'), r'<?php $page->\1 = \2; ?>'),
            ),
            examples=["@set('title', 'Home')"],
        ))

    def compositionDirectives_register(self) -> None:
        """Register include, component, section and yield directives"""

        def include_handler(unit: TemplateUnit, compiler: Any) -> RewriteResult:
            """
            Handle @include(name[, vars])

            The argument list is scanned with balanced parentheses so vars
            may span lines. Unclosed calls are left as they are.
            """
            def rewrite(text: str) -> Tuple[str, int]:
                parts: List[str] = []
                cursor = 0
                count = 0

                for call in INCLUDE_CALL.finditer(text):
                    if call.start() < cursor:
                        continue

                    close = arguments_scan(text, call.end() - 1)
                    if close is None:
                        continue

                    arguments = arguments_split(text[call.end():close], maxsplit=1)
                    filename = name_unquote(arguments[0]).replace('.', '/')
                    if not filename:
                        continue

                    variables = arguments[1] if len(arguments) > 1 and arguments[1] else None
                    filepath = compiler.includePath_make(unit, filename)

                    if variables:
                        variables = re.sub(r'\s*\n\s*', ' ', variables)
                        emitted = ' '.join([
                            '<?php ob_start();',
                            f'if (file_exists({filepath})) {{',
                            f'extract({variables});',
                            f'include {filepath}; echo ob_get_clean();',
                            '} else { ob_end_clean(); } ?>',
                        ])
                    else:
                        emitted = f'<?php if (file_exists({filepath})) {{ include {filepath}; }} ?>'

                    parts.append(text[cursor:call.start()])
                    parts.append(emitted)
                    cursor = close + 1
                    count += 1

                parts.append(text[cursor:])
                return ''.join(parts), count

            return unit_rewrite(unit, rewrite)

        def component_handler(unit: TemplateUnit, compiler: Any) -> RewriteResult:
            """
            Handle @component(name) ... @endcomponent

            Regions are taken one per pass (first-match policy) until none
            remain. Inside a region, single-line slots are extracted first,
            block slots next, and the rest becomes $slot->content.
            """
            def render(match: DirectiveMatch) -> str:
                filename = name_unquote(match.argument).replace('.', '/')
                body = match.body or ''

                singles = SLOT_INLINE.findall(body)
                body = SLOT_INLINE.sub('', body)
                body, blocks = SLOTS.regions_remove(body)

                filepath = compiler.includePath_make(unit, filename)
                lines = [
                    '<?php ob_start(); ?>',
                    '<?php $slot = (object) []; ?>',
                    f'<?php ob_start(); ?>{body}<?php $slot->content = ob_get_clean(); ?>',
                ]

                for slot_name, value in singles:
                    lines.append(
                        f'<?php $slot->{name_unquote(slot_name)} = {literal_requote(value)} ?? ""; ?>'
                    )

                for block in blocks:
                    lines.append(
                        f'<?php ob_start(); ?>{block.body}'
                        f'<?php $slot->{name_unquote(block.argument)} = ob_get_clean(); ?>'
                    )

                lines.append(
                    f'<?php if (file_exists({filepath})) {{ include {filepath}; echo ob_get_clean(); }}'
                    ' else { ob_end_clean(); } ?>'
                )
                return '\n'.join(lines)

            def rewrite(text: str) -> Tuple[str, int]:
                total = 0
                while True:
                    text, count = COMPONENTS.regions_rewrite(text, render)
                    if not count:
                        return text, total
                    total += count

            return unit_rewrite(unit, rewrite)

        def section_handler(unit: TemplateUnit, compiler: Any) -> RewriteResult:
            """
            Handle @section(name) ... @endsection

            Sections leave the main body and become 'before' fragments, so
            they run ahead of any @yield regardless of source position.
            """
            content, matches = SECTIONS.regions_remove(unit.content)
            if not matches:
                return RewriteResult.unmatched(unit)

            fragments = [
                '\n'.join([
                    '<?php ob_start(); ?>',
                    match.body or '',
                    f'<?php $sections["{name_unquote(match.argument)}"] = ob_get_clean(); ?>',
                ])
                for match in matches
            ]

            return RewriteResult(
                unit=unit.evolve(content=content).before_append(*fragments),
                matched=True,
            )

        self.register(RuleSpec(
            name='include',
            category=RuleCategory.COMPOSITION,
            description='Include a file from the includes directory if it exists',
            handler=include_handler,
            examples=["@include('partials.nav')", "@include('card', ['title' => $post->title])"],
        ))

        self.register(RuleSpec(
            name='component',
            category=RuleCategory.COMPOSITION,
            description='Reusable component with named slots',
            handler=component_handler,
            triggers=['endcomponent', 'slot', 'endslot'],
            examples=[
                "@component('card')\n@slot('title', 'Hi')\nBody\n@endcomponent",
                "@component('alert')\n@slot('footer')\n<b>Note</b>\n@endslot\nText\n@endcomponent",
            ],
        ))

        self.register(RuleSpec(
            name='section',
            category=RuleCategory.COMPOSITION,
            description='Named block captured before the page body runs',
            handler=section_handler,
            triggers=['endsection'],
            examples=["@section('sidebar')\n<ul></ul>\n@endsection"],
        ))

        self.register(RuleSpec(
            name='yield',
            category=RuleCategory.COMPOSITION,
            description='Echo a captured section',
            handler=substitution_rule(
                (re.compile(r'@yield ?\(["\'](.*?)["\']\)'), r'<?php echo $sections["\1"] ?? ""; ?>'),
            ),
            examples=["@yield('content')"],
        ))

    def stackDirectives_register(self) -> None:
        """Register push and stack directives"""

        def push_handler(unit: TemplateUnit, compiler: Any) -> RewriteResult:
            """
            Handle @push(name, value) and @push(name) ... @endpush

            Both shapes are rewritten in place and merge newest-first.
            """
            def inline(match: re.Match[str]) -> str:
                target = name_unquote(match.group(1))
                value = literal_requote(match.group(2))
                return f'<?php $stacks["{target}"] = array_merge([{value}], $stacks["{target}"] ?? []); ?>'

            def block(match: DirectiveMatch) -> str:
                target = name_unquote(match.argument)
                return '\n'.join([
                    '<?php ob_start(); ?>',
                    match.body or '',
                    f'<?php $stacks["{target}"] = array_merge([ob_get_clean()], $stacks["{target}"] ?? []); ?>',
                ])

            def rewrite(text: str) -> Tuple[str, int]:
                text, singles = PUSH_INLINE.subn(inline, text)
                text, blocks = PUSHES.regions_rewrite(text, block)
                return text, singles + blocks

            return unit_rewrite(unit, rewrite)

        self.register(RuleSpec(
            name='push',
            category=RuleCategory.STACK,
            description='Push content onto a named stack (newest first)',
            handler=push_handler,
            triggers=['endpush'],
            examples=["@push('scripts', '<script src=\"app.js\"></script>')",
                      "@push('styles')\n<style></style>\n@endpush"],
        ))

        self.register(RuleSpec(
            name='stack',
            category=RuleCategory.STACK,
            description='Echo the joined contents of a stack',
            handler=substitution_rule(
                (re.compile(r'@stack ?\(["\'](.*?)["\']\)'), r'<?php echo join("", $stacks["\1"] ?? []); ?>'),
            ),
            examples=["@stack('scripts')"],
        ))
