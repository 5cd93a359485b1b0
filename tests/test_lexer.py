"""
Pygments lexer tests
"""

from pygments.token import Comment, Keyword, Name, Punctuation

from bladerunner.lib.lexer import BladeLexer, get_lexer, source_highlight


def tokens(text: str):
    return list(get_lexer().get_tokens(text))


class TestBladeLexer:
    """Test token classification"""

    def test_control_directive(self):
        result = tokens("@if($x)\n")

        assert (Punctuation, "@") in result
        assert (Keyword, "if") in result

    def test_close_tag(self):
        assert (Keyword, "endforeach") in tokens("@endforeach\n")

    def test_composition_directive(self):
        assert (Name.Builtin, "component") in tokens("@component('card')\n")

    def test_project_directive(self):
        assert (Name.Function, "auth") in tokens("@auth($user)\n")

    def test_comment(self):
        result = tokens("{{-- note --}}\n")

        assert (Comment.Multiline, "{{--") in result
        assert (Comment.Multiline, " note ") in result
        assert (Comment.Multiline, "--}}") in result

    def test_output_delimiters(self):
        result = tokens("{{ $title }}\n")

        assert (Punctuation, "{{") in result
        assert (Punctuation, "}}") in result

    def test_metadata(self):
        assert BladeLexer.name == "Bladerunner"
        assert "bladerunner" in BladeLexer.aliases


class TestHighlight:
    """Test terminal highlighting"""

    def test_php(self):
        assert "\x1b[" in source_highlight("<?php echo 1; ?>", "php")

    def test_template(self):
        assert "\x1b[" in source_highlight("@if($x)\n@endif\n", "blade")

    def test_unknown_language_falls_back(self):
        assert "hello" in source_highlight("hello", "no-such-language")
