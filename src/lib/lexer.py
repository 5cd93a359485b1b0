"""
Custom Pygments lexer for Blade-style template syntax

Provides syntax highlighting for template sources and, through
source_highlight(), terminal highlighting of compiled PHP output.

Token types:
- Keyword: control-flow directives (@if, @foreach, @endif, ...)
- Name.Builtin: composition directives (@component, @section, @push, ...)
- Name.Function: project-defined directives (@auth, @can, ...)
- Comment.Multiline: {{-- comments --}}
- Punctuation: '@' and the {{ }} / {!! !!} delimiters
- PHP lexer tokens: expressions inside output tags and <?php ?> blocks
"""

from typing import Optional

from pygments import highlight
from pygments.formatters import Terminal256Formatter
from pygments.lexer import Lexer, RegexLexer, bygroups, using
from pygments.lexers import get_lexer_by_name, TextLexer
from pygments.lexers.php import PhpLexer
from pygments.token import (
    Text,
    Punctuation,
    Name,
    Keyword,
    Comment,
)
from pygments.util import ClassNotFound

from ..config import appsettings


CONTROL_DIRECTIVES = (
    'if', 'elseif', 'else', 'unless', 'empty',
    'for', 'foreach', 'while', 'break', 'continue',
)

COMPOSITION_DIRECTIVES = (
    'component', 'slot', 'section', 'yield', 'push', 'stack', 'include', 'set',
)


class BladeLexer(RegexLexer):
    """
    Lexer for Blade-style templates

    Example:
        @foreach($posts as $post)
            <h2>{{ $post->title }}</h2>
        @endforeach

    Tokens:
        @ -> Punctuation
        foreach -> Keyword
        {{ -> Punctuation
        $post->title -> PHP tokens
    """

    name = 'Bladerunner'
    aliases = ['bladerunner']
    filenames = ['*.blade']

    tokens = {
        'root': [
            # {{-- comments --}}
            (r'\{\{--', Comment.Multiline, 'comment'),

            # Raw and escaped output tags
            (r'(\{!!)(.*?)(!!\})',
             bygroups(Punctuation, using(PhpLexer, startinline=True), Punctuation)),
            (r'(\{\{)(.*?)(\}\})',
             bygroups(Punctuation, using(PhpLexer, startinline=True), Punctuation)),

            # Closing tags (@endif, @endcomponent, ...)
            (r'(@)(end[A-Za-z_]+)', bygroups(Punctuation, Keyword)),

            # Control-flow directives
            (r'(@)(%s)\b' % '|'.join(CONTROL_DIRECTIVES), bygroups(Punctuation, Keyword)),

            # Composition directives
            (r'(@)(%s)\b' % '|'.join(COMPOSITION_DIRECTIVES), bygroups(Punctuation, Name.Builtin)),

            # Project-defined directives (fallback)
            (r'(@)([A-Za-z_]\w*)', bygroups(Punctuation, Name.Function)),

            # Embedded PHP blocks
            (r'<\?php[\s\S]*?\?>', using(PhpLexer)),

            # HTML comments and tags (pass through as-is)
            (r'<!--[\s\S]*?-->', Comment),
            (r'<[^>]+>', Name.Tag),

            # Everything else is text
            (r'[^@{<]+', Text),
            (r'[\s\S]', Text),
        ],

        'comment': [
            (r'--\}\}', Comment.Multiline, '#pop'),
            (r'[^-]+', Comment.Multiline),
            (r'-', Comment.Multiline),
        ],
    }


def get_lexer() -> BladeLexer:
    """
    Get the BladeLexer instance

    Returns:
        BladeLexer instance ready for use with Pygments
    """
    return BladeLexer()


def source_highlight(text: str, language: str = "php", style: Optional[str] = None) -> str:
    """
    Highlight text for a 256-colour terminal.

    Args:
        text: Source to highlight
        language: 'bladerunner' for templates, any Pygments lexer name otherwise
        style: Pygments style (defaults to the configured pygments_style)

    Returns:
        Text with ANSI colour codes; unknown languages fall back to plain text
    """
    lexer: Lexer
    try:
        if language.lower() in ['bladerunner', 'blade']:
            lexer = BladeLexer()
        else:
            lexer = get_lexer_by_name(language)
    except ClassNotFound:
        lexer = TextLexer()

    formatter = Terminal256Formatter(style=style or appsettings.pygments_style)
    return highlight(text, lexer, formatter)
