"""
Page assembly for compiled templates

Turns one source file into its final PHP program:

  - front matter (YAML between '---' lines) becomes the page metadata
  - the output path follows the 'permalink' setting or the pretty
    name/index.php convention
  - the compiled body is captured as section "content" and either echoed
    or handed to the layout named by the 'layout' setting
  - a runtime prelude decodes the metadata into $page, prepares $sections
    and $stacks, and includes plugin and data scripts

Files inside the convention directories (_includes, _layouts, _plugins,
_data) are partials: they are compiled but not assembled.
"""

import json
import re
from pathlib import PurePosixPath
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml

from ..models.template import CompiledPage, TemplateUnit
from .compiler import Compiler
from .log import LOG


FRONT_MATTER = re.compile(r'^---\n?([\S\s]*?)\n?---\n?')
SOURCE_SUFFIX = re.compile(r'\.blade(\.php)?$')
FILE_EXTENSION = re.compile(r'\.[a-z]+$')

SEGMENT_NAMES = ["one", "two", "three", "four", "five", "six"]


class FrontMatterError(Exception):
    """Raised when a page's front matter is not a YAML mapping"""
    pass


def frontMatter_extract(source: str) -> Tuple[Dict[str, Any], str]:
    """
    Split a page into front matter metadata and template body.

    Args:
        source: Raw page source

    Returns:
        Tuple of (metadata dict, remaining body); ({}, source) without front matter

    Raises:
        FrontMatterError: if the header is not valid YAML or not a mapping

    Example:
        >>> frontMatter_extract("---\\nlayout: main\\n---\\nHi")
        ({'layout': 'main'}, 'Hi')
    """
    match = FRONT_MATTER.match(source)
    if not match:
        return {}, source

    try:
        metadata: Any = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        raise FrontMatterError(f"Failed to parse front matter: {e}")

    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise FrontMatterError(
            f"Front matter must be a mapping, got {type(metadata).__name__}"
        )

    return metadata, source[match.end():]


def outputPath_php(source_path: PurePosixPath) -> PurePosixPath:
    """Replace a .blade or .blade.php suffix with .php"""
    return PurePosixPath(SOURCE_SUFFIX.sub('.php', str(source_path)))


def outputPath_derive(source_path: PurePosixPath, metadata: Mapping[str, Any]) -> PurePosixPath:
    """
    Output path of a page, relative to the output root.

    A 'permalink' with a file extension is used as the path; any other
    permalink becomes a directory holding index.php. Without a permalink,
    pages other than index become name/index.php.

    Example:
        >>> outputPath_derive(PurePosixPath("about.blade"), {})
        PurePosixPath('about/index.php')
        >>> outputPath_derive(PurePosixPath("x.blade"), {"permalink": "/feed.xml"})
        PurePosixPath('feed.xml')
    """
    path = outputPath_php(source_path)
    permalink = metadata.get('permalink')

    if permalink:
        perma = str(permalink).strip('/')
        if FILE_EXTENSION.search(perma):
            return PurePosixPath(perma)
        return PurePosixPath(perma) / 'index.php'

    if path.name != 'index.php':
        return path.with_suffix('') / 'index.php'

    return path


def url_derive(output_path: PurePosixPath) -> str:
    """
    Page URL for an output path, assuming the site is served from root.

    Example:
        >>> url_derive(PurePosixPath("blog/post/index.php"))
        '/blog/post'
    """
    if str(output_path) == 'index.php':
        return '/'
    if output_path.name == 'index.php':
        return f'/{output_path.parent}'
    return f'/{output_path}'


class PageAssembler:
    """
    Assembles compiled units into complete PHP programs

    Attributes:
        compiler: Compiler whose options (directories, buffer) drive assembly
    """

    def __init__(self, compiler: Optional[Compiler] = None) -> None:
        self.compiler = compiler or Compiler()
        self.options = self.compiler.options

    def partial_is(self, source_path: PurePosixPath) -> bool:
        """Whether the file lives in one of the convention directories"""
        directories = set(self.options.directories_list())
        return any(part in directories for part in source_path.parts)

    def assemble(self, source: str, source_path: Union[str, PurePosixPath]) -> CompiledPage:
        """
        Compile one source file into its output program

        Args:
            source: Raw file contents
            source_path: Path relative to the input root

        Returns:
            CompiledPage with output path, URL and final text

        Raises:
            FrontMatterError: if a page's front matter is invalid
        """
        source_path = PurePosixPath(source_path)

        if self.partial_is(source_path):
            output_path = outputPath_php(source_path)
            unit = self.compiler.compile(source, str(output_path))
            text = '\n'.join(part for part in (*unit.before, unit.content, *unit.after) if part)
            LOG(f"Partial {source_path} -> {output_path}", level=2)
            return CompiledPage(source_path, output_path, None, text, unit)

        metadata, body = frontMatter_extract(source)
        output_path = outputPath_derive(source_path, metadata)
        url = url_derive(output_path)

        unit = self.compiler.compile(body, str(output_path), metadata)
        unit = self.layout_apply(unit)
        text = self.program_build(unit, url)

        LOG(f"Page {source_path} -> {output_path} ({url})", level=2)
        return CompiledPage(source_path, output_path, url, text, unit)

    def layout_apply(self, unit: TemplateUnit) -> TemplateUnit:
        """
        Capture the body as section "content" and render it

        The content capture is the last 'before' fragment, after the page's
        own sections, so everything it yields has already been captured. The
        'after' fragment includes the layout, or echoes the content when the
        page has none.
        """
        capture = '\n'.join([
            '<?php ob_start(); ?>',
            unit.content,
            '<?php $sections["content"] = ob_get_clean(); ?>',
        ])
        unit = unit.evolve(content='').before_append(capture)

        layout = unit.metadata.get('layout')
        if layout:
            filepath = self.compiler.includePath_make(
                unit, str(layout).replace('.', '/'), directory=self.options.layouts_dir
            )
            return unit.after_append(f'<?php include {filepath}; ?>')

        return unit.after_append('<?php echo $sections["content"]; ?>')

    def prelude_make(self, unit: TemplateUnit, url: str) -> str:
        """Runtime prelude: request helpers, $sections/$stacks, plugins and data"""
        metadata = json.dumps(dict(unit.metadata), default=str, ensure_ascii=False)
        segment_names = ', '.join(f'"{name}"' for name in SEGMENT_NAMES)
        segment_defaults = ', '.join(f'"{name}" => ""' for name in SEGMENT_NAMES)
        root = f'dirname(__FILE__) . "{unit.relative_path}'

        statements = [
            r'$segments = explode("/", preg_replace("/^\/|\/$/", "", parse_url($_SERVER["REQUEST_URI"])["path"]));',
            f'$segment = (object) [{segment_defaults}];',
            'array_map(function ($value, $key) use ($segment) { '
            f'$target = [{segment_names}][$key]; $segment->$target = $value; '
            '}, $segments, array_keys($segments));',
            '$segments = join("/", $segments);',
            '$post = (object) $_POST;',
            '$get = (object) $_GET;',
            '$server = (object) array_change_key_case($_SERVER);',
            '$sections = [];',
            '$stacks = [];',
            f'$page->url = "{url}";',
            '$page->modified = filemtime(__FILE__);',
        ]

        return '\n'.join([
            f'<?php ob_start(); ?>{metadata}<?php $page = json_decode(ob_get_clean()); ?>',
            '<?php ' + ' '.join(statements),
            f'foreach (glob({root}/{self.options.plugins_dir}/*.php") as $plugin) {{ include $plugin; }}',
            f'foreach (glob({root}/{self.options.data_dir}/*.php") as $filename) {{ '
            '$label = basename($filename, ".php"); '
            'if (!isset($$label)) { $contents = include $filename; $$label = json_decode(json_encode($contents)); }}',
            '?>',
        ])

    def program_build(self, unit: TemplateUnit, url: str) -> str:
        """
        Join every piece of the page in execution order

        Optional buffer start, prelude, before fragments, remaining content,
        after fragments, optional buffer post-processing echo.
        """
        buffer = self.options.buffer
        parts = [
            '<?php ob_start(); ?>' if buffer else '',
            self.prelude_make(unit, url),
            *unit.before,
            unit.content,
            *unit.after,
            f'<?php echo {buffer}(ob_get_clean()); ?>' if buffer else '',
        ]
        return '\n'.join(part for part in parts if part)
