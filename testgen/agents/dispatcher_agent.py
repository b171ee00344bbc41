"""
Dispatcher Agent - Sends prompts to the selected LLM backend with retry
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .base_agent import BaseAgent
from ..backends import ModelBackend, default_backends
from ..config import settings
from ..exceptions import FatalBackendError, TransientBackendError
from ..models.prompt import ImageBlock
from ..models.request import ModelChoice


class DispatcherAgent(BaseAgent):
    """
    Dispatches one prompt to one backend.

    Only TransientBackendError is retried, with exponential backoff
    between attempts. Fatal errors and exhausted retries propagate; no
    other backend is substituted.
    """

    def __init__(
        self,
        backends: Optional[Dict[ModelChoice, ModelBackend]] = None,
        max_attempts: Optional[int] = None,
        base_delay_ms: Optional[int] = None,
        max_delay_ms: Optional[int] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        super().__init__(
            name="Dispatcher",
            description="Calls the LLM backend with retry and backoff"
        )
        self.backends = backends if backends is not None else default_backends()
        self.max_attempts = max_attempts or settings.MAX_RETRIES
        self.base_delay_ms = base_delay_ms or settings.RETRY_BASE_DELAY_MS
        self.max_delay_ms = max_delay_ms or settings.RETRY_MAX_DELAY_MS
        self._sleep = sleep

    async def execute(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """Execute dispatch."""
        raw = await self.dispatch(
            prompt=context["prompt"],
            images=context.get("images", []),
            model=context.get("model", ModelChoice.CLAUDE),
            temperature=context.get("temperature", settings.TEMPERATURE)
        )
        return {"raw_response": raw}

    def backoff_ms(self, attempt: int) -> int:
        """Delay after the given failed attempt (1-based)."""
        return min(self.base_delay_ms * 2 ** (attempt - 1), self.max_delay_ms)

    def backend_for(self, model: ModelChoice) -> ModelBackend:
        backend = self.backends.get(ModelChoice(model))
        if backend is None:
            raise FatalBackendError(f"No backend configured for model '{model}'", backend=str(model))
        return backend

    async def dispatch(
        self,
        prompt: str,
        images: List[ImageBlock],
        model: ModelChoice = ModelChoice.CLAUDE,
        temperature: float = 0.05
    ) -> str:
        """
        Send the prompt to the backend selected by ``model``.

        Args:
            prompt: Assembled prompt text
            images: Screenshot blocks in journey order
            model: Which backend to use
            temperature: Sampling temperature

        Returns:
            Raw text completion

        Raises:
            TransientBackendError: still overloaded after the last attempt
            FatalBackendError: on the first fatal failure
        """
        backend = self.backend_for(model)

        for attempt in range(1, self.max_attempts + 1):
            self.log_info(f"Dispatching to {backend.name} (attempt {attempt}/{self.max_attempts})")
            try:
                raw = await backend.dispatch(prompt, images, temperature)
            except TransientBackendError as e:
                if attempt >= self.max_attempts:
                    self.log_error(f"{backend.name} still unavailable after {attempt} attempts: {e.message}")
                    raise
                delay = self.backoff_ms(attempt)
                self.log_warning(f"{backend.name} transient failure: {e.message}")
                self.log_info(f"Waiting {delay}ms before retry")
                await self._sleep(delay / 1000)
            except FatalBackendError as e:
                self.log_error(f"{backend.name} fatal failure: {e.message}")
                raise
            else:
                self.log_info(f"Received {len(raw)} chars from {backend.name}")
                return raw

        # max_attempts < 1
        raise TransientBackendError(
            f"{backend.name} was not attempted",
            backend=backend.name,
            retry_after=settings.TRANSIENT_RETRY_AFTER_SECONDS
        )
