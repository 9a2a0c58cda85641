"""
Discussion errors and the policy for reacting to them.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class DiscussionErrorType(str, Enum):
    GENERATE_RESPONSE = "generate_response"
    NO_DISCUSSION = "no_discussion"
    ABORT = "abort"
    UNKNOWN = "unknown"


class DiscussionError(Exception):
    """Error raised while running a discussion turn"""

    def __init__(
        self,
        error_type: DiscussionErrorType,
        message: str,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.type = error_type
        self.message = message
        self.cause = cause
        self.context = context or {}

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


@dataclass(frozen=True)
class ErrorHandling:
    should_pause: bool


def handle_discussion_error(error: DiscussionError) -> ErrorHandling:
    """Log an error and decide whether the discussion should pause"""
    if error.type == DiscussionErrorType.ABORT:
        logger.info(f"Discussion turn aborted: {error}")
        return ErrorHandling(should_pause=False)

    logger.error(f"Discussion error ({error.type.value}): {error}")
    return ErrorHandling(should_pause=True)
