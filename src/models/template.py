"""
Template compilation data models

Type-safe structures carried through the directive rewrite stages.
"""

from dataclasses import dataclass, field, replace
from pathlib import PurePosixPath
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, TYPE_CHECKING

from ..config import appsettings, AppSettings

if TYPE_CHECKING:
    from .directives import RewriteResult


@dataclass(frozen=True)
class TemplateUnit:
    """
    One template file at compile time

    Units are immutable: every rewrite stage receives a unit and returns a
    new one (see evolve()), so each stage can be tested in isolation.

    Attributes:
        content: Template text being rewritten
        path: Source path relative to the logical site root (posix form)
        relative_path: Chain of parent references from the file's directory
                       back to the root (e.g. "", "/..", "/../.."), derived
                       once by the compiler and used to build include paths
        metadata: Page settings from front matter
        before: PHP fragments executed ahead of the main body (sections)
        after: PHP fragments executed after the main body (layout include)

    Example:
        >>> unit = TemplateUnit(content="@yield('a')", path="blog/post.php")
        >>> unit.evolve(content="").content
        ''
    """
    content: str
    path: str = ""
    relative_path: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict)
    before: Tuple[str, ...] = ()
    after: Tuple[str, ...] = ()

    def evolve(self, **changes: Any) -> "TemplateUnit":
        """Return a copy of this unit with the given fields replaced"""
        return replace(self, **changes)

    def before_append(self, *fragments: str) -> "TemplateUnit":
        """Return a copy with fragments appended to the before sequence"""
        return self.evolve(before=self.before + tuple(fragments))

    def after_append(self, *fragments: str) -> "TemplateUnit":
        """Return a copy with fragments appended to the after sequence"""
        return self.evolve(after=self.after + tuple(fragments))


@dataclass(frozen=True)
class DirectiveMatch:
    """
    One occurrence of a directive found in template text

    Returned by PairedRegion.matches_find(). Ephemeral: only meaningful for
    the text it was found in.

    Attributes:
        name: Directive name without the '@' (e.g. "section")
        start: Offset of the '@' in the scanned text
        end: Offset just past the closing tag (or closing parenthesis)
        argument: Raw argument text between the parentheses
        body: Text between the opening call and the closing tag, if any

    Example:
        For "@section('a')Hi@endsection":
        DirectiveMatch(name="section", start=0, end=26, argument="'a'", body="Hi")
    """
    name: str
    start: int
    end: int
    argument: str
    body: Optional[str] = None


ExtensionHandler = Callable[[TemplateUnit, Any], "TemplateUnit | RewriteResult"]


@dataclass
class CompileOptions:
    """
    Per-invocation compiler configuration

    Attributes:
        directives: Extension handlers applied after the built-in rules, in
                    mapping order. Each is called as handler(unit, compiler)
                    and returns a TemplateUnit or a RewriteResult.
        safe_output: HTML-escape {{ }} output (False emits a raw echo)
        buffer: Name of a PHP function the assembled page output is passed
                through before being echoed (None disables the wrapper)
        includes_dir: Directory of @include/@component targets
        layouts_dir: Directory of page layouts
        plugins_dir: Directory of plugin scripts included before each page
        data_dir: Directory of data scripts included before each page
    """
    directives: Dict[str, ExtensionHandler] = field(default_factory=dict)
    safe_output: bool = True
    buffer: Optional[str] = None
    includes_dir: str = "_includes"
    layouts_dir: str = "_layouts"
    plugins_dir: str = "_plugins"
    data_dir: str = "_data"

    @classmethod
    def settings_create(
        cls,
        settings: Optional[AppSettings] = None,
        **overrides: Any,
    ) -> "CompileOptions":
        """
        Build options from application settings.

        Args:
            settings: Settings to read (defaults to the appsettings singleton)
            **overrides: Explicit values taking precedence over settings

        Returns:
            CompileOptions populated from BLADERUNNER_* configuration
        """
        settings = settings or appsettings
        values: Dict[str, Any] = {
            "safe_output": settings.safe_output,
            "buffer": settings.buffer or None,
            "includes_dir": settings.includes_dir,
            "layouts_dir": settings.layouts_dir,
            "plugins_dir": settings.plugins_dir,
            "data_dir": settings.data_dir,
        }
        values.update(overrides)
        return cls(**values)

    def directories_list(self) -> list[str]:
        """Convention directory names (include, layout, plugin, data)"""
        return [self.includes_dir, self.layouts_dir, self.plugins_dir, self.data_dir]


@dataclass(frozen=True)
class CompiledPage:
    """
    Result of compiling one source file into its PHP output

    Attributes:
        source_path: Source path relative to the input root
        output_path: Output path relative to the output root
        url: Page URL ("/" for the root index); None for partials
        text: Final PHP program text
        unit: Compiled unit the text was assembled from
    """
    source_path: PurePosixPath
    output_path: PurePosixPath
    url: Optional[str]
    text: str
    unit: TemplateUnit

    @property
    def partial(self) -> bool:
        """Partials (includes, layouts, plugins, data) carry no URL"""
        return self.url is None
