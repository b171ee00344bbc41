"""
Ollama Backend - Local vision model (llava by default)
"""
import base64
from typing import List, Optional

import httpx
import ollama

from .base import ModelBackend
from ..config import settings
from ..exceptions import FatalBackendError, TransientBackendError
from ..models.prompt import ImageBlock


TRANSIENT_STATUS_CODES = {429, 503, 529}


class OllamaBackend(ModelBackend):
    """
    Sends the prompt and screenshots to a local Ollama server.

    Ollama takes images as a flat list on the message, so the page labels
    are listed in the prompt text in the same order as the images.
    """

    name = "ollama"

    def __init__(
        self,
        host: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[ollama.AsyncClient] = None
    ):
        super().__init__()
        self.host = host or settings.OLLAMA_HOST
        self.model = model or settings.OLLAMA_MODEL
        self.client = client or ollama.AsyncClient(host=self.host)

    async def dispatch(
        self,
        prompt: str,
        images: List[ImageBlock],
        temperature: float = 0.05
    ) -> str:
        """Call the chat endpoint with base64 images attached."""
        message = {
            "role": "user",
            "content": self._with_image_labels(prompt, images),
        }
        encoded = [base64.b64encode(b.image).decode() for b in images if b.image is not None]
        if encoded:
            message["images"] = encoded

        try:
            response = await self.client.chat(
                model=self.model,
                messages=[message],
                options={"temperature": temperature}
            )
        except ollama.ResponseError as e:
            if e.status_code in TRANSIENT_STATUS_CODES:
                raise TransientBackendError(
                    f"Ollama is busy: {e.error}",
                    backend=self.name,
                    status_code=e.status_code,
                    retry_after=settings.TRANSIENT_RETRY_AFTER_SECONDS
                ) from e
            raise FatalBackendError(
                f"Ollama rejected the request: {e.error}",
                backend=self.name,
                status_code=e.status_code
            ) from e
        except (ConnectionError, httpx.TransportError) as e:
            raise FatalBackendError(
                f"Ollama is not reachable at {self.host}: {e}",
                backend=self.name
            ) from e

        return response["message"]["content"]

    @staticmethod
    def _with_image_labels(prompt: str, images: List[ImageBlock]) -> str:
        if not images:
            return prompt
        labels = "\n".join(block.label for block in images)
        return f"{prompt}\n\n**ATTACHED SCREENSHOTS (in order):**\n{labels}"
