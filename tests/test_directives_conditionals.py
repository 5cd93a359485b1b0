"""
Conditional and control directive tests

Tests @if/@elseif/@else/@unless/@empty, @break/@continue and @set rules
in isolation, one rule per call.
"""

import pytest

from bladerunner.lib.compiler import Compiler
from bladerunner.models.template import TemplateUnit


def rule(name: str, text: str):
    """Apply one built-in rule to a fresh unit"""
    return Compiler().rule_apply(name, TemplateUnit(content=text))


class TestIf:
    """Test @if ... @endif"""

    def test_if_block(self):
        """Open and close tags become PHP alternate syntax"""
        result = rule("if", "@if(true)\nX\n@endif")

        assert result.matched is True
        assert result.unit.content == "<?php if (true) : ?>\nX\n<?php endif; ?>"

    def test_if_with_space_before_parenthesis(self):
        """'@if (' is accepted like '@if('"""
        result = rule("if", "@if ($count > 1)")
        assert result.unit.content == "<?php if ($count > 1) : ?>"

    def test_expression_passed_verbatim(self):
        """Nested calls in the condition are carried through untouched"""
        result = rule("if", "@if(in_array($tag, get_tags($post)))")
        assert result.unit.content == "<?php if (in_array($tag, get_tags($post))) : ?>"

    def test_mismatched_nesting_not_detected(self):
        """Open and close tags are rewritten independently"""
        result = rule("if", "@if($a)\n@endunless")
        assert result.unit.content == "<?php if ($a) : ?>\n@endunless"

    def test_no_match_returns_same_unit(self):
        """Explicit no-match variant carries the untouched unit"""
        unit = TemplateUnit(content="<p>plain</p>")
        result = Compiler().rule_apply("if", unit)

        assert result.matched is False
        assert result.unit is unit


class TestElseFamily:
    """Test @elseif and @else"""

    def test_elseif(self):
        result = rule("elseif", "@elseif($a == 2)")
        assert result.unit.content == "<?php elseif ($a == 2) : ?>"

    def test_else_at_end_of_line(self):
        result = rule("else", "A\n@else\nB")
        assert result.unit.content == "A\n<?php else : ?>\nB"

    def test_else_at_end_of_text(self):
        result = rule("else", "@else")
        assert result.unit.content == "<?php else : ?>"

    def test_else_rule_ignores_elseif(self):
        """@elseif is not an @else followed by text"""
        result = rule("else", "@elseif($x)")
        assert result.matched is False

    def test_else_followed_by_text_not_rewritten(self):
        """@else must stand alone on its line"""
        result = rule("else", "@else <b>x</b>")
        assert result.matched is False


class TestUnlessAndEmpty:
    """Test negated and empty-check conditionals"""

    def test_unless(self):
        result = rule("unless", "@unless($user)\nHi\n@endunless")
        assert result.unit.content == "<?php if (!($user)) : ?>\nHi\n<?php endif; ?>"

    def test_empty(self):
        result = rule("empty", "@empty($posts)\nNone\n@endempty")
        assert result.unit.content == (
            "<?php if (empty($posts) || !($posts)) : ?>\nNone\n<?php endif; ?>"
        )


class TestLoopControl:
    """Test @break and @continue"""

    @pytest.mark.parametrize("keyword", ["break", "continue"])
    def test_bare(self, keyword):
        result = rule(keyword, f"@{keyword}")
        assert result.unit.content == f"<?php {keyword}; ?>"

    @pytest.mark.parametrize("keyword", ["break", "continue"])
    def test_conditional(self, keyword):
        result = rule(keyword, f"@{keyword}($i > 3)")
        assert result.unit.content == f"<?php if ($i > 3) {{ {keyword}; }} ?>"

    def test_longer_names_untouched(self):
        """@breakpoint is not @break"""
        result = rule("break", "@breakpoint")
        assert result.matched is False


class TestSet:
    """Test @set page property assignment"""

    def test_set(self):
        result = rule("set", "@set('title', 'Home')")
        assert result.unit.content == "<?php $page->title = 'Home'; ?>"

    def test_set_without_space(self):
        result = rule("set", '@set("count",3)')
        assert result.unit.content == "<?php $page->count = 3; ?>"

    def test_malformed_set_passes_through(self):
        """Missing comma means no rewrite"""
        result = rule("set", "@set('title')")
        assert result.matched is False
        assert result.unit.content == "@set('title')"
