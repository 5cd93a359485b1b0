"""
Build logging for bladerunner

LOG() writes through loguru only when the verbosity of the running build
allows it. The build's ProgramState is stored in a context variable by
state_connectToLogger(), so the compiler and page assembler can log rule
traces without taking a state argument.

Levels used across the build:
    1  summary (files found, build result)
    2  per-file progress (-v)
    3  per-rule rewrite traces (-vv)

Outside a connected build (library use, tests) LOG() is silent.
"""

from loguru import logger
from typing import Any, Optional
from contextvars import ContextVar
import sys

_program_state: ContextVar[Optional[Any]] = ContextVar('program_state', default=None)

logger_format = (
    "<green>{time:HH:mm:ss}</green> │ "
    "<level>{level: <5}</level> │ "
    "<cyan>{function: <20}</cyan> @ "
    "<cyan>{line: <4}</cyan> ║ "
    "<level>{message}</level>"
)

logger.remove()
logger.add(sys.stderr, format=logger_format, level="DEBUG")


def state_connectToLogger(state: Any) -> None:
    """
    Make a build's verbosity visible to LOG().

    Args:
        state: ProgramState of the running build, or None to disconnect
    """
    _program_state.set(state)


def LOG(message: str, level: int = 1, **kwargs: Any) -> None:
    """
    Emit a build message when the connected verbosity is at least level.

    The record is attributed to the caller (function and line), not to
    LOG() itself.

    Args:
        message: Text to log
        level: Verbosity the message needs (see module docstring)
        **kwargs: Extra fields bound onto the loguru record
    """
    state = _program_state.get()

    if state and hasattr(state, 'verbosity') and state.verbosity >= level:
        logger.opt(depth=1).debug(message, **kwargs)
