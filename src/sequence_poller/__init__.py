"""
Sequence Poller

Cancellable, deduplicated polling sequences for asyncio applications.
"""

__version__ = "0.1.0"
__author__ = "Sequence Poller"
__email__ = "support@example.com"

from .config import Settings
from .exceptions import SequencePollerError
from .logging_config import setup_logging
from .options import (
    DEFAULT_POLLING_TIMEOUT,
    IterationMeta,
    PollingOptions,
    SequenceOutcome,
    SequenceState,
)
from .poller import Poller, create_sequence, get_default_poller
from .registry import InMemoryPollingRegistry, PollingRegistry, PollingRegistryFactory

__all__ = [
    "Settings",
    "SequencePollerError",
    "DEFAULT_POLLING_TIMEOUT",
    "IterationMeta",
    "PollingOptions",
    "SequenceOutcome",
    "SequenceState",
    "Poller",
    "create_sequence",
    "get_default_poller",
    "setup_logging",
    "PollingRegistry",
    "InMemoryPollingRegistry",
    "PollingRegistryFactory",
]
