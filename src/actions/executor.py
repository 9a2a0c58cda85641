"""
Action Executor

Runs parsed actions against a capability registry.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..capabilities.registry import CapabilityNotFoundError, CapabilityRegistry
from .parser import ParsedAction

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Outcome of one action"""
    capability: str
    params: Dict[str, Any] = field(default_factory=dict)
    result: Any = None
    error: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class ActionExecutor:
    """
    Executes actions in order. A failing action is recorded in its result
    and does not stop the others.
    """

    def execute(self, actions: List[ParsedAction], registry: CapabilityRegistry) -> List[ExecutionResult]:
        return [self._execute_one(action, registry) for action in actions]

    def _execute_one(self, action: ParsedAction, registry: CapabilityRegistry) -> ExecutionResult:
        start = datetime.now(timezone.utc)

        if action.parsed is None:
            return ExecutionResult(
                capability="unknown",
                error=action.error or "Invalid action",
                start_time=start,
                end_time=datetime.now(timezone.utc),
            )

        definition = action.parsed
        result = ExecutionResult(capability=definition.capability, params=dict(definition.params), start_time=start)

        try:
            result.result = registry.execute(definition.capability, definition.params)
        except CapabilityNotFoundError as e:
            result.error = str(e)
        except Exception as e:
            logger.warning(f"Action {definition.capability} failed: {e}")
            result.error = str(e) or type(e).__name__

        result.end_time = datetime.now(timezone.utc)
        return result
