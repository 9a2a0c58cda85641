"""
Actions module - Parses and executes the actions agents request
"""

from .executor import ActionExecutor, ExecutionResult
from .parser import ActionDef, ActionParser, ParsedAction
from .runner import ActionRunner

__all__ = [
    "ActionDef",
    "ActionExecutor",
    "ActionParser",
    "ActionRunner",
    "ExecutionResult",
    "ParsedAction",
]
