#!/usr/bin/env python3
"""
bladerunner - Blade-style template to PHP compiler

Compiles a tree of template pages into PHP programs that reproduce layout
inheritance, components with slots, named stacks and per-page metadata.

As an aside, this codebase leverages the ChRIS "plugin" concept/pattern as
general purpose python app development framework.

Conventions:
    - Pages: any *.blade / *.blade.php file outside the convention dirs
    - Partials: files under _includes/, _layouts/, _plugins/, _data/
    - Front matter: YAML header between '---' lines (layout, permalink, ...)
    - Output: about.blade -> about/index.php, index.blade -> index.php

Usage:
    bladerunner inputdir/ outputdir/

Examples:
    # Basic build
    bladerunner site/ public/

    # Raw {{ }} output and a post-processing function
    bladerunner site/ public/ --unsafeOutput --buffer minify_html

    # Show templates and compiled PHP with per-rule traces
    bladerunner site/ public/ --highlight -vv
"""

import sys
from pathlib import Path
from argparse import ArgumentParser, Namespace, ArgumentDefaultsHelpFormatter

from chris_plugin import chris_plugin
from .config import appsettings
from .lib import Compiler, PageAssembler, FrontMatterError, __version__, LOG, state_connectToLogger
from .lib.lexer import source_highlight
from .models import CompileOptions, ProgramState, pipeline


DISPLAY_TITLE = r"""
   _     _           _
  | |__ | | __ _  __| | ___ _ __ _   _ _ __  _ __   ___ _ __
  | '_ \| |/ _` |/ _` |/ _ \ '__| | | | '_ \| '_ \ / _ \ '__|
  | |_) | | (_| | (_| |  __/ |  | |_| | | | | | | |  __/ |
  |_.__/|_|\__,_|\__,_|\___|_|   \__,_|_| |_|_| |_|\___|_|

  Blade-style template to PHP compiler
"""

# Define CLI arguments
parser = ArgumentParser(
    description="bladerunner - compile Blade-style templates into PHP pages",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument(
    "--pattern",
    default=None,
    type=str,
    help=f"Glob (relative to inputdir) selecting template sources. Defaults to '{appsettings.source_pattern}'",
)

parser.add_argument(
    "--unsafeOutput",
    action="store_true",
    default=False,
    help="Emit raw echo for {{ }} instead of HTML-escaped output",
)

parser.add_argument(
    "--buffer",
    default=None,
    type=str,
    help="PHP function the whole page output is passed through before it is echoed",
)

parser.add_argument(
    "--highlight",
    action="store_true",
    default=False,
    help="Print each template source and its compiled PHP with syntax highlighting",
)

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv, -vvv)",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate the input directory and create the output directory.

    Args:
        inputstate: Initial program state with CLI options

    Returns:
        ProgramState with envOK set

    Exits:
        1 if the input directory does not exist
    """

    state = inputstate.copy()

    if state.verbosity >= 2:
        LOG(DISPLAY_TITLE, level=2)

    LOG("Checking environment...", level=2)

    if state.inputdir is None or not state.inputdir.is_dir():
        print(f"Error: Input directory not found: {state.inputdir}", file=sys.stderr)
        state.envOK = False
        sys.exit(1)

    state.outputdir.mkdir(parents=True, exist_ok=True)
    LOG(f"Input directory: {state.inputdir}", level=2)
    LOG(f"Output directory: {state.outputdir}", level=2)

    state.envOK = True
    return state


def sources_collect(inputstate: ProgramState) -> ProgramState:
    """
    Find template sources under the input directory.

    Args:
        inputstate: Program state with a validated inputdir

    Returns:
        ProgramState with sourceFiles (sorted, files only)
    """

    state = inputstate.copy()

    pattern = state.pattern or appsettings.source_pattern
    state.sourceFiles = sorted(path for path in state.inputdir.glob(pattern) if path.is_file())

    LOG(f"Found {len(state.sourceFiles)} source files matching '{pattern}'", level=1)
    return state


def templates_compile(inputstate: ProgramState) -> ProgramState:
    """
    Compile every source file and write the PHP output.

    Args:
        inputstate: Program state with sourceFiles

    Returns:
        ProgramState with compiledPages

    Exits:
        1 if a file cannot be read or has invalid front matter
    """

    state = inputstate.copy()

    options = CompileOptions.settings_create(
        safe_output=False if state.unsafeOutput else appsettings.safe_output,
        buffer=state.buffer or appsettings.buffer or None,
    )
    assembler = PageAssembler(Compiler(options))

    LOG("Compiling templates...", level=1)

    state.compiledPages = []
    for source_file in state.sourceFiles:
        relative = source_file.relative_to(state.inputdir)
        try:
            source = source_file.read_text(encoding="utf-8")
            page = assembler.assemble(source, relative.as_posix())
        except FrontMatterError as e:
            print(f"Error in {relative}: {e}", file=sys.stderr)
            sys.exit(1)
        except OSError as e:
            print(f"Error reading {relative}: {e}", file=sys.stderr)
            sys.exit(1)

        output_file = state.outputdir / Path(page.output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(page.text, encoding="utf-8")
        LOG(f"Wrote {output_file}", level=2)

        if state.highlight:
            print(f"==> {relative}")
            print(source_highlight(source, "bladerunner"))
            print(f"==> {page.output_path}")
            print(source_highlight(page.text, "php"))

        state.compiledPages.append(page)

    return state


def results_report(inputstate: ProgramState) -> ProgramState:
    """
    Display build results.

    Args:
        inputstate: Program state with compiledPages populated

    Returns:
        ProgramState unchanged (terminal pipeline stage)

    Exits:
        1 if compiledPages is None
    """
    state: ProgramState = inputstate.copy()
    if state.compiledPages is None:
        print("Error: Compilation failed", file=sys.stderr)
        sys.exit(1)

    pages = [page for page in state.compiledPages if not page.partial]
    partials = len(state.compiledPages) - len(pages)

    LOG("\n✓ Build successful!", level=1)
    LOG(f"  Pages:    {len(pages)}", level=1)
    LOG(f"  Partials: {partials}", level=1)
    for page in pages:
        LOG(f"  {page.url} -> {page.output_path}", level=2)
    return state


@chris_plugin(
    parser=parser,
    title="bladerunner - Blade-style template to PHP compiler",
    category="Utility",
    min_memory_limit="100Mi",
    min_cpu_limit="500m",
)
def main(options: Namespace, inputdir: Path, outputdir: Path):
    """
    Main entry point - compile a template tree into PHP pages.

    Orchestrates the full build pipeline:
        1. env_check: Validate directories
        2. sources_collect: Find template sources
        3. templates_compile: Compile and write each file
        4. results_report: Display results to user

    Args:
        options: CLI arguments from argparse
        inputdir: Directory containing template sources
        outputdir: Directory where compiled PHP will be written

    Note:
        This function is wrapped by @chris_plugin which handles CLI
        argument parsing and invokes this function with parsed values.
    """

    state: ProgramState = ProgramState.state_createFromNamespace(
        options=options, inputdir=inputdir, outputdir=outputdir
    )

    # Connect state to logger for entire pipeline
    state_connectToLogger(state)

    pipeline(state, env_check, sources_collect, templates_compile, results_report)


if __name__ == "__main__":
    main()  # type: ignore  # @chris_plugin decorator transforms signature
