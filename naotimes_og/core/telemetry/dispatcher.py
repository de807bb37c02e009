"""
Telemetry Dispatcher
====================

Fire-and-forget reporting of rendered artifacts to a Plausible endpoint.

Each dispatch swaps a freshly spawned background task into a single slot.
The previous task keeps running on its own; nothing waits on it, nothing
cancels it, and delivery failures are only logged.
"""

import asyncio
from typing import Any, Callable, Coroutine, Optional, Set

import aiohttp

from naotimes_og.config.logging import get_logger
from naotimes_og.config.settings import Settings, get_settings
from naotimes_og.core.telemetry.metadata import forwarded_for
from naotimes_og.models.schemas import ClientMetadata, TelemetryEvent

logger = get_logger(__name__)

SessionFactory = Callable[..., aiohttp.ClientSession]


class TelemetrySlot:
    """Holds at most one outstanding telemetry task."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        # Strong references for tasks swapped out of the slot, the event loop
        # only keeps weak ones.
        self._detached: Set[asyncio.Task] = set()

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    async def replace(self, factory: Callable[[], Coroutine[Any, Any, None]]) -> asyncio.Task:
        """Spawn ``factory()`` as a task and store it in place of the old one."""
        async with self._lock:
            task = asyncio.create_task(factory())
            self._detached.add(task)
            task.add_done_callback(self._detached.discard)
            self._task = task
        return task

    def clear(self) -> int:
        """Drop every reference without waiting. Returns how many were pending."""
        pending = sum(1 for task in self._detached if not task.done())
        self._task = None
        self._detached.clear()
        return pending


class TelemetryDispatcher:
    """Send Plausible events in the background."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        slot: Optional[TelemetrySlot] = None,
        session_factory: SessionFactory = aiohttp.ClientSession,
    ):
        self.settings = settings or get_settings()
        self.slot = slot or TelemetrySlot()
        self._session_factory = session_factory
        self.logger: Any = logger.bind(component="telemetry")

    @property
    def enabled(self) -> bool:
        return self.settings.telemetry_enabled

    @property
    def endpoint(self) -> str:
        return f"{(self.settings.plausible_url or '').rstrip('/')}/api/event"

    async def dispatch(
        self, event: TelemetryEvent, metadata: ClientMetadata
    ) -> Optional[asyncio.Task]:
        """
        Report ``event`` without waiting for delivery.

        Args:
            event: Event to report, its domain is filled in here
            metadata: Client identity used for the outbound headers

        Returns:
            The spawned task, or None when telemetry is not configured
        """
        if not self.enabled:
            return None

        return await self.slot.replace(lambda: self._send(event, metadata))

    async def _send(self, event: TelemetryEvent, metadata: ClientMetadata) -> None:
        event.domain = self.settings.plausible_domain
        headers = {
            "User-Agent": metadata.user_agent,
            "X-Forwarded-For": forwarded_for(metadata),
            "Content-Type": "application/json",
        }
        timeout = aiohttp.ClientTimeout(total=self.settings.telemetry_timeout)

        try:
            async with self._session_factory(headers=headers, timeout=timeout) as session:
                async with session.post(self.endpoint, json=event.to_payload()) as response:
                    if 200 <= response.status < 300:
                        self.logger.debug("Telemetry event sent", url=event.url)
                    else:
                        self.logger.debug(
                            "Telemetry event rejected",
                            url=event.url,
                            status=response.status,
                            response=await response.text(),
                        )
        except Exception as e:
            self.logger.debug("Telemetry event failed", url=event.url, error=str(e))

    async def close(self) -> None:
        """Abandon outstanding telemetry at shutdown."""
        pending = self.slot.clear()
        self.logger.info("Telemetry dispatcher closed", abandoned=pending)
