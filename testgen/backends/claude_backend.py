"""
Claude Backend - Anthropic Messages API with vision input
"""
import base64
from typing import Any, Dict, List, Optional

import anthropic

from .base import ModelBackend
from ..config import settings
from ..exceptions import FatalBackendError, TransientBackendError
from ..models.prompt import ImageBlock


TRANSIENT_STATUS_CODES = {503, 529}


class ClaudeBackend(ModelBackend):
    """Sends the prompt followed by page-labelled screenshots to Claude."""

    name = "claude"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        client: Optional[anthropic.AsyncAnthropic] = None
    ):
        super().__init__()
        self.api_key = api_key or settings.ANTHROPIC_API_KEY
        self.model = model or settings.CLAUDE_MODEL
        self.max_tokens = max_tokens or settings.CLAUDE_MAX_TOKENS
        self._client = client

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            if not self.api_key:
                raise FatalBackendError(
                    "ANTHROPIC_API_KEY is not configured", backend=self.name
                )
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def dispatch(
        self,
        prompt: str,
        images: List[ImageBlock],
        temperature: float = 0.05
    ) -> str:
        """Call the Messages API and return the concatenated text blocks."""
        content = [{"type": "text", "text": prompt}, *self._image_content(images)]

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": content}]
            )
        except anthropic.RateLimitError as e:
            raise TransientBackendError(
                f"Claude rate limit reached: {e}",
                backend=self.name,
                status_code=e.status_code,
                retry_after=settings.TRANSIENT_RETRY_AFTER_SECONDS
            ) from e
        except anthropic.APIStatusError as e:
            if e.status_code in TRANSIENT_STATUS_CODES:
                raise TransientBackendError(
                    f"Claude is overloaded: {e}",
                    backend=self.name,
                    status_code=e.status_code,
                    retry_after=settings.TRANSIENT_RETRY_AFTER_SECONDS
                ) from e
            raise FatalBackendError(
                f"Claude rejected the request: {e}",
                backend=self.name,
                status_code=e.status_code
            ) from e
        except anthropic.APIConnectionError as e:
            raise TransientBackendError(
                f"Could not reach Claude: {e}",
                backend=self.name,
                retry_after=settings.TRANSIENT_RETRY_AFTER_SECONDS
            ) from e

        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )

    @staticmethod
    def _image_content(images: List[ImageBlock]) -> List[Dict[str, Any]]:
        """Interleave a page label before every image."""
        content: List[Dict[str, Any]] = []
        for block in images:
            content.append({"type": "text", "text": block.label})
            if block.image is None:
                continue
            content.append({
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": block.media_type,
                    "data": base64.b64encode(block.image).decode()
                }
            })
        return content
