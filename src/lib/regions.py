"""
Paired-region extraction for block directives

Block directives (@component, @slot, @section, @push) open with a call and
close with an @end tag. PairedRegion finds those spans with either a
first-match or an all-matches policy and rewrites them without touching the
text around them.

Also provides the small argument helpers shared by the rules: balanced
argument scanning, top-level comma splitting, name unquoting and
re-quoting of literal values.

Example:
    >>> sections = PairedRegion("section")
    >>> [m.body for m in sections.matches_find("@section('a')Hi@endsection")]
    ['Hi']
"""

import json
import re
from typing import Callable, List, Optional, Tuple

from ..models.template import DirectiveMatch


# Region names never contain parentheses, commas or newlines, so an
# @push('s', 'x') call can never be mistaken for an @push('s') block opener.
REGION_ARGUMENT = r'\s*([^(),\n]*?)\s*'

QUOTED_LITERAL = re.compile(r'^[\'"]|[\'"]$')

BRACKETS = {'(': ')', '[': ']', '{': '}'}


class PairedRegion:
    """
    Finder for @open(name) ... @close regions

    Attributes:
        opener: Directive name opening the region (e.g. "section")
        closer: Directive name closing it (defaults to "end" + opener)
        multiple: All-matches policy when True; only the first region is
                  reported when False
    """

    def __init__(self, opener: str, closer: Optional[str] = None, multiple: bool = True) -> None:
        self.opener = opener
        self.closer = closer or f"end{opener}"
        self.multiple = multiple
        self.pattern = re.compile(
            rf'@{re.escape(self.opener)} ?\({REGION_ARGUMENT}\)'
            rf'([\s\S]*?)'
            rf'@{re.escape(self.closer)}(?![A-Za-z_])'
        )

    def matches_find(self, text: str) -> List[DirectiveMatch]:
        """
        Find regions in text according to the match policy.

        A call without a closing tag is not a region and is not reported.

        Args:
            text: Text to scan

        Returns:
            Matches in source order (at most one for the first-match policy)
        """
        if self.multiple:
            found = list(self.pattern.finditer(text))
        else:
            first = self.pattern.search(text)
            found = [first] if first else []

        return [
            DirectiveMatch(
                name=self.opener,
                start=match.start(),
                end=match.end(),
                argument=match.group(1),
                body=match.group(2),
            )
            for match in found
        ]

    def regions_rewrite(self, text: str, render: Callable[[DirectiveMatch], str]) -> Tuple[str, int]:
        """
        Replace each found region with render(match).

        Args:
            text: Text to rewrite
            render: Produces the replacement for one region

        Returns:
            Tuple of (rewritten text, number of regions replaced)
        """
        matches = self.matches_find(text)
        if not matches:
            return text, 0

        parts: List[str] = []
        cursor = 0
        for match in matches:
            parts.append(text[cursor:match.start])
            parts.append(render(match))
            cursor = match.end
        parts.append(text[cursor:])

        return ''.join(parts), len(matches)

    def regions_remove(self, text: str) -> Tuple[str, List[DirectiveMatch]]:
        """
        Cut found regions out of text.

        Returns:
            Tuple of (text without the regions, removed matches)
        """
        matches = self.matches_find(text)
        remaining, _ = self.regions_rewrite(text, lambda match: '')
        return remaining, matches

    def __repr__(self) -> str:
        policy = "all" if self.multiple else "first"
        return f"PairedRegion(@{self.opener} ... @{self.closer}, policy={policy})"


def arguments_scan(text: str, open_index: int) -> Optional[int]:
    """
    Find the parenthesis closing the argument list opened at open_index.

    Quoted strings are skipped, so parentheses inside string literals do not
    count. Arguments may span lines.

    Args:
        text: Text containing the call
        open_index: Index of the opening '('

    Returns:
        Index of the matching ')', or None when the list is never closed
    """
    depth = 0
    quote: Optional[str] = None
    i = open_index

    while i < len(text):
        char = text[i]
        if quote:
            if char == '\\':
                i += 2
                continue
            if char == quote:
                quote = None
        elif char in '\'"':
            quote = char
        elif char == '(':
            depth += 1
        elif char == ')':
            depth -= 1
            if depth == 0:
                return i
        i += 1

    return None


def arguments_split(argument: str, maxsplit: int = -1) -> List[str]:
    """
    Split an argument list on top-level commas.

    Commas nested in brackets or quoted strings are not separators.

    Example:
        >>> arguments_split("'card', ['a' => f(1, 2)]", maxsplit=1)
        ["'card'", "['a' => f(1, 2)]"]
    """
    parts: List[str] = []
    stack: List[str] = []
    quote: Optional[str] = None
    start = 0
    i = 0

    while i < len(argument):
        char = argument[i]
        if quote:
            if char == '\\':
                i += 2
                continue
            if char == quote:
                quote = None
        elif char in '\'"':
            quote = char
        elif char in BRACKETS:
            stack.append(BRACKETS[char])
        elif stack and char == stack[-1]:
            stack.pop()
        elif char == ',' and not stack and (maxsplit < 0 or len(parts) < maxsplit):
            parts.append(argument[start:i].strip())
            start = i + 1
        i += 1

    parts.append(argument[start:].strip())
    return parts


def name_unquote(argument: str) -> str:
    """Strip every quote character from a directive name argument"""
    return re.sub(r'["\']', '', argument).strip()


def literal_requote(value: str) -> str:
    """
    Re-quote a quoted literal as a double-quoted string literal.

    Values that do not look quoted are PHP expressions and pass through.
    Values that look quoted but do not decode are also passed through
    verbatim; they fail when the generated PHP runs, not at compile time.

    Example:
        >>> literal_requote("'Hi'")
        '"Hi"'
        >>> literal_requote("$title")
        '$title'
    """
    value = value.strip()
    if not QUOTED_LITERAL.search(value):
        return value

    candidate = re.sub(r"^'|'$", '"', value)
    try:
        decoded = json.loads(candidate)
    except ValueError:
        return value

    return json.dumps(decoded, ensure_ascii=False)
