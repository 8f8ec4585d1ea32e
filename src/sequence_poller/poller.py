"""
Polling sequence runner.

A sequence repeatedly calls a fetch operation until its continue condition
says stop. At most one sequence per name runs at a time: the name is checked
against an external registration store before starting and again before every
subsequent fetch. Flipping the registration (or the start condition) from
outside is how a running sequence gets cancelled.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from .config import Settings, get_settings
from .options import (
    DEFAULT_POLLING_TIMEOUT,
    IterationMeta,
    PollingOptions,
    SequenceOutcome,
    SequenceState,
)
from .registry import PollingRegistry

logger = structlog.get_logger(__name__)


async def _resolve(value: Any) -> Any:
    """Await ``value`` if a capability handed back an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


class Poller:
    """
    Runs named polling sequences.

    Each sequence is a loop over the states Start, Fetching, Deciding and
    Scheduled, ending in Finished, Failed or Aborted. All registration state
    lives in the caller's store and is reached only through the capabilities
    on ``PollingOptions``.
    """

    def __init__(
        self,
        default_timeout: float = DEFAULT_POLLING_TIMEOUT,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
        registry: PollingRegistry | None = None,
    ):
        """
        Initialize the poller.

        Args:
            default_timeout: Seconds between iterations for options without a timeout
            sleep: Timer used in the Scheduled state (defaults to asyncio.sleep)
            registry: Store whose capabilities ``build_options`` fills in
        """
        self.default_timeout = default_timeout
        self.registry = registry
        self._sleep = sleep or asyncio.sleep
        self._tasks: set[asyncio.Task[SequenceOutcome | None]] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> "Poller":
        """Create a poller with the configured timeout and registry backend."""
        return cls(
            default_timeout=settings.default_timeout_seconds,
            sleep=sleep,
            registry=settings.create_registry(),
        )

    @property
    def active_tasks(self) -> set[asyncio.Task[SequenceOutcome | None]]:
        """Sequences started with ``spawn`` that have not completed yet."""
        return set(self._tasks)

    def build_options(self, **kwargs: Any) -> PollingOptions:
        """
        Build options, taking registration capabilities from ``self.registry``.

        Capabilities passed explicitly win over the registry's.

        Raises:
            PollingConfigurationError: If the resulting options are invalid
        """
        if self.registry is not None:
            kwargs = {**self.registry.capabilities(), **kwargs}
        return PollingOptions.build(**kwargs)

    async def create_sequence(
        self, name: str, options: PollingOptions
    ) -> SequenceOutcome | None:
        """
        Create a polling sequence and register it to the store.

        If a sequence with the same name is already registered this is a
        no-op and returns None. Otherwise the name is registered and the
        sequence runs until it reaches a terminal state.

        Args:
            name: Polling name, unique among active sequences
            options: Capabilities and options for the sequence

        Returns:
            The terminal outcome, or None when deduplicated
        """
        if await _resolve(options.get_polling_registration(name)):
            logger.debug("Polling sequence already registered", name=name)
            return None

        await _resolve(options.register_polling(name))

        logger.info(
            "Polling sequence started",
            name=name,
            timeout_seconds=self._timeout_for(options),
        )

        with structlog.contextvars.bound_contextvars(polling_sequence=name):
            return await self._run_chain(name, options, IterationMeta())

    def spawn(
        self, name: str, options: PollingOptions
    ) -> asyncio.Task[SequenceOutcome | None]:
        """
        Start a sequence in the background and return its task.

        Must be called from a running event loop.
        """
        task = asyncio.create_task(
            self.create_sequence(name, options), name=f"polling:{name}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_closed(self) -> None:
        """Wait for every spawned sequence to complete."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _timeout_for(self, options: PollingOptions) -> float:
        if options.timeout is not None:
            return options.timeout
        return self.default_timeout

    async def _run_chain(
        self, name: str, options: PollingOptions, meta: IterationMeta
    ) -> SequenceOutcome:
        """The actual polling loop, one pass per iteration."""
        timeout = self._timeout_for(options)
        unregistered = False

        async def unregister() -> None:
            nonlocal unregistered
            if not unregistered:
                unregistered = True
                await _resolve(options.unregister_polling(name))

        try:
            while True:
                self._enter(name, SequenceState.START, meta)
                if not await self._should_start(name, options):
                    await unregister()
                    logger.info(
                        "Polling sequence aborted",
                        name=name,
                        state=SequenceState.ABORTED.value,
                        iteration_count=meta.iteration_count,
                    )
                    return SequenceOutcome(
                        name=name,
                        state=SequenceState.ABORTED,
                        iteration_count=meta.iteration_count,
                    )

                self._enter(name, SequenceState.FETCHING, meta)
                try:
                    result = await _resolve(options.fetch_function())
                except Exception as e:
                    await unregister()
                    return await self._fail(name, options, meta, e)

                self._enter(name, SequenceState.DECIDING, meta)
                try:
                    should_continue = await _resolve(
                        options.should_continue_condition(result)
                    )
                except Exception as e:
                    await unregister()
                    if not options.continue_errors_to_on_error:
                        logger.error(
                            "Continue condition raised",
                            name=name,
                            iteration_count=meta.iteration_count,
                            error=str(e),
                        )
                        raise
                    return await self._fail(name, options, meta, e)

                if not should_continue:
                    await unregister()
                    return await self._finish(name, options, meta, result)

                self._enter(name, SequenceState.SCHEDULED, meta, delay_seconds=timeout)
                await self._wait(timeout, options.cancel_event)
                meta = meta.next()

        except asyncio.CancelledError:
            logger.info(
                "Polling sequence cancelled",
                name=name,
                iteration_count=meta.iteration_count,
            )
            await unregister()
            raise

    def _enter(
        self, name: str, state: SequenceState, meta: IterationMeta, **extra: Any
    ) -> None:
        logger.debug(
            "Polling state changed",
            name=name,
            state=state.value,
            iteration_count=meta.iteration_count,
            **extra,
        )

    async def _should_start(self, name: str, options: PollingOptions) -> bool:
        """Start-state gate, re-evaluated before every fetch."""
        if options.cancel_event is not None and options.cancel_event.is_set():
            return False

        is_registered = await _resolve(options.get_polling_registration(name))
        should_start = await _resolve(options.should_start_condition())

        return bool(should_start) and bool(is_registered)

    async def _wait(self, timeout: float, cancel_event: asyncio.Event | None) -> None:
        """Scheduled-state delay; a set cancel event cuts it short."""
        if cancel_event is None:
            await self._sleep(timeout)
            return

        sleeper = asyncio.ensure_future(self._sleep(timeout))
        canceller = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait(
                {sleeper, canceller}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for pending in (sleeper, canceller):
                if not pending.done():
                    pending.cancel()

        if sleeper.done() and not sleeper.cancelled():
            sleeper.result()

    async def _finish(
        self,
        name: str,
        options: PollingOptions,
        meta: IterationMeta,
        result: Any,
    ) -> SequenceOutcome:
        logger.info(
            "Polling sequence finished",
            name=name,
            state=SequenceState.FINISHED.value,
            iteration_count=meta.iteration_count,
        )

        if options.on_finish is not None:
            # A failing finish handler ends the sequence as failed.
            try:
                await _resolve(options.on_finish(result, meta))
            except Exception as e:
                return await self._fail(name, options, meta, e)

        return SequenceOutcome(
            name=name,
            state=SequenceState.FINISHED,
            iteration_count=meta.iteration_count,
            result=result,
        )

    async def _fail(
        self,
        name: str,
        options: PollingOptions,
        meta: IterationMeta,
        error: Exception,
    ) -> SequenceOutcome:
        logger.warning(
            "Polling sequence failed",
            name=name,
            state=SequenceState.FAILED.value,
            iteration_count=meta.iteration_count,
            error=str(error),
            error_type=type(error).__name__,
            handled=options.on_error is not None,
        )

        if options.on_error is not None:
            try:
                await _resolve(options.on_error(error))
            except Exception as handler_error:
                logger.error(
                    "Polling error handler raised",
                    name=name,
                    error=str(handler_error),
                    error_type=type(handler_error).__name__,
                    exc_info=True,
                )

        return SequenceOutcome(
            name=name,
            state=SequenceState.FAILED,
            iteration_count=meta.iteration_count,
            error=error,
        )


_default_poller: Poller | None = None


def get_default_poller() -> Poller:
    """Get the module-level poller, building it from settings on first use."""
    global _default_poller
    if _default_poller is None:
        _default_poller = Poller.from_settings(get_settings())
    return _default_poller


async def create_sequence(
    name: str, options: PollingOptions
) -> SequenceOutcome | None:
    """Create a polling sequence on the module-level poller."""
    return await get_default_poller().create_sequence(name, options)
