"""
Program state model and pipeline helper

Defines ProgramState dataclass for the functional pipeline pattern and
the pipeline() helper for composing transformation stages.
"""

from pathlib import Path
from argparse import Namespace
from functools import reduce
from typing import Any, Optional, Type, TypeVar, List, Callable
from dataclasses import dataclass, field
import dataclasses


PS = TypeVar("PS", bound="ProgramState")
T = TypeVar("T")


@dataclass
class ProgramState:
    """
    Central state container for the build pipeline (state bus pattern).

    This dataclass carries all program state through the functional pipeline,
    with each stage adding new fields as the build progresses.

    Pipeline stages and their state additions:
        - Initial: inputdir, outputdir, verbosity, pattern, unsafeOutput, buffer, highlight
        - env_check: envOK
        - sources_collect: sourceFiles
        - templates_compile: compiledPages
        - results_report: (no additions, terminal stage)

    Attributes:
        inputdir: Directory containing template sources
        outputdir: Directory receiving compiled PHP files
        verbosity: Logging verbosity level (1-3)
        pattern: Glob selecting sources (None uses the configured default)
        unsafeOutput: Emit raw echo for {{ }} instead of escaped output
        buffer: PHP output post-processing function name
        highlight: Print compiled output with syntax highlighting
        envOK: Environment validation passed
        sourceFiles: Source files found under inputdir
        compiledPages: List[CompiledPage] written to outputdir
    """

    # CLI arguments
    inputdir: Optional[Path] = field(default=None)
    outputdir: Optional[Path] = field(default=None)
    verbosity: int = field(default=1)
    pattern: Optional[str] = field(default=None)
    unsafeOutput: bool = field(default=False)
    buffer: Optional[str] = field(default=None)
    highlight: bool = field(default=False)

    # Pipeline state
    envOK: bool = field(default=False)
    sourceFiles: List[Path] = field(default_factory=list)
    compiledPages: Optional[List[Any]] = field(default=None)  # List[CompiledPage] at runtime

    @classmethod
    def state_createFromNamespace(
        cls: Type["ProgramState"], options: Namespace, inputdir: Path, outputdir: Path
    ) -> "ProgramState":
        """
        Create ProgramState from argparse Namespace and directory paths.

        Args:
            options: Parsed CLI arguments
            inputdir: Directory containing template sources
            outputdir: Directory for compiled output

        Returns:
            ProgramState instance with all CLI options as attributes
        """
        options_dict = vars(options)

        # Only keep options that are ProgramState fields
        valid_fields = {f.name for f in dataclasses.fields(cls)}
        filtered_options = {k: v for k, v in options_dict.items() if k in valid_fields}

        merged_args = {**filtered_options, "inputdir": inputdir, "outputdir": outputdir}
        return cls(**merged_args)

    def copy(self: PS) -> PS:
        """
        Creates a shallow copy of the ProgramState instance.

        Returns:
            A new ProgramState instance.
        """
        return type(self)(**self.__dict__)


def pipeline(initial_state: T, *stages: Callable[[T], T]) -> T:
    """
    Execute a functional pipeline of state transformations.

    Each stage is a function (state) -> state that receives the output of
    the previous stage and returns a new state. Used both for the CLI
    (ProgramState) and for template compilation (TemplateUnit).

    Args:
        initial_state: Starting state
        *stages: Variable number of stage functions to execute in order

    Returns:
        Final state after all transformations

    Example:
        final_state = pipeline(
            initial_state,
            env_check,
            sources_collect,
            templates_compile,
            results_report
        )

    This is equivalent to:
        results_report(templates_compile(sources_collect(env_check(initial_state))))

    But reads left-to-right instead of inside-out.
    """
    return reduce(lambda state, stage: stage(state), stages, initial_state)
