"""
Generation Cache - Content-addressed memo of parsed generation results
"""
import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Optional, Set, Tuple

from .bounded import BoundedStore
from ..config import settings
from ..models.test_case import GenerationResult


logger = logging.getLogger(__name__)


class GenerationCache(BoundedStore[GenerationResult]):
    """
    Bounded result cache with single-flight dispatch.

    Concurrent non-forced requests for the same key share one in-flight
    generation. Forced requests always run their own generation and
    overwrite the cached entry when they finish. A generation runs in its
    own task, so a cancelled caller never aborts it for the others.
    """

    def __init__(
        self,
        max_entries: Optional[int] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        super().__init__(
            max_entries=max_entries or settings.CACHE_MAX_ENTRIES,
            ttl_seconds=settings.CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds,
            clock=clock
        )
        self._in_flight: Dict[str, asyncio.Future] = {}
        # Running producers, kept referenced until they finish
        self._producers: Set[asyncio.Future] = set()

    def in_flight(self, key: str) -> bool:
        return key in self._in_flight

    async def get_or_create(
        self,
        key: str,
        factory: Callable[[], Awaitable[GenerationResult]],
        force: bool = False
    ) -> Tuple[GenerationResult, bool]:
        """
        Return the cached result for ``key`` or produce it with ``factory``.

        Args:
            key: Content hash of the generation inputs
            factory: Coroutine function that dispatches and parses
            force: Skip both the cache and any in-flight generation

        Returns:
            (result, fresh) where fresh is True only for the caller whose
            factory actually ran
        """
        if not force:
            cached = self.get(key)
            if cached is not None:
                logger.info(f"Cache hit for {key[:12]}")
                return cached.model_copy(deep=True), False

            pending = self._in_flight.get(key)
            if pending is not None:
                logger.info(f"Joining in-flight generation for {key[:12]}")
                result = await asyncio.shield(pending)
                return result.model_copy(deep=True), False

        logger.info(f"Cache {'bypass' if force else 'miss'} for {key[:12]}")
        task = asyncio.ensure_future(self._produce(key, factory))
        self._in_flight[key] = task
        self._producers.add(task)
        task.add_done_callback(lambda done: self._release(key, done))

        result = await asyncio.shield(task)
        return result.model_copy(deep=True), True

    async def _produce(
        self,
        key: str,
        factory: Callable[[], Awaitable[GenerationResult]]
    ) -> GenerationResult:
        result = await factory()
        self.set(key, result)
        return result

    def _release(self, key: str, task: asyncio.Future):
        self._producers.discard(task)
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        # Mark retrieved so a failure nobody awaited is not reported as unhandled
        if not task.cancelled():
            task.exception()
