"""
Polling options and per-sequence metadata.

``PollingOptions`` is the immutable bundle of capabilities a caller hands to
the poller. Every capability is a plain callable; any of them may return an
awaitable, which the poller awaits.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import PollingConfigurationError

DEFAULT_POLLING_TIMEOUT = 3.0


class SequenceState(str, Enum):
    """Lifecycle states of one polling chain."""

    START = "start"
    FETCHING = "fetching"
    DECIDING = "deciding"
    SCHEDULED = "scheduled"
    FINISHED = "finished"
    FAILED = "failed"
    ABORTED = "aborted"


@dataclass
class IterationMeta:
    """Counter carried across the iterations of a single chain."""

    iteration_count: int = 1

    def next(self) -> "IterationMeta":
        return IterationMeta(iteration_count=self.iteration_count + 1)


@dataclass
class SequenceOutcome:
    """Terminal result of a polling chain."""

    name: str
    state: SequenceState
    iteration_count: int
    result: Any = None
    error: BaseException | None = None


class PollingOptions(BaseModel):
    """Capabilities and options for one polling sequence."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    fetch_function: Callable[[], Any] = Field(
        ..., description="Operation invoked once per iteration"
    )
    get_polling_registration: Callable[[str], Any] = Field(
        ..., description="Reads whether a sequence with the name is active"
    )
    register_polling: Callable[[str], Any] = Field(
        ..., description="Marks the name as active"
    )
    unregister_polling: Callable[[str], Any] = Field(
        ..., description="Marks the name as inactive"
    )
    should_start_condition: Callable[[], Any] = Field(
        ..., description="Gate checked before every fetch"
    )
    should_continue_condition: Callable[[Any], Any] = Field(
        ..., description="Gate checked with the result of every fetch"
    )
    on_error: Callable[[BaseException], Any] | None = Field(
        default=None, description="Called with the raw error of a failed chain"
    )
    on_finish: Callable[[Any, IterationMeta], Any] | None = Field(
        default=None, description="Called with the last result and iteration meta"
    )
    timeout: float | None = Field(
        default=None,
        ge=0,
        description="Seconds between iterations (poller default when unset)",
    )
    cancel_event: asyncio.Event | None = Field(
        default=None, description="Optional token that aborts the chain when set"
    )
    continue_errors_to_on_error: bool = Field(
        default=True,
        description="Route should_continue_condition failures to on_error",
    )

    @classmethod
    def build(cls, **kwargs: Any) -> "PollingOptions":
        """
        Create options, converting validation failures to a package error.

        Raises:
            PollingConfigurationError: If any option is missing or invalid
        """
        try:
            return cls(**kwargs)
        except ValidationError as e:
            raise PollingConfigurationError(
                f"Invalid polling options: {e.error_count()} error(s)",
                context={
                    "errors": [
                        {
                            "field": ".".join(str(part) for part in err["loc"]),
                            "msg": err["msg"],
                        }
                        for err in e.errors()
                    ]
                },
            ) from e
