"""
Model Backend - Interface shared by every LLM provider
"""
from abc import ABC, abstractmethod
from typing import List
import logging

from ..models.prompt import ImageBlock


class ModelBackend(ABC):
    """
    One interchangeable LLM provider.

    Implementations translate their SDK's failures into
    TransientBackendError (overloaded / rate limited) or
    FatalBackendError (auth, invalid request, unreachable).
    """

    name: str = "backend"

    def __init__(self):
        self.logger = logging.getLogger(f"backend.{self.name}")

    @abstractmethod
    async def dispatch(
        self,
        prompt: str,
        images: List[ImageBlock],
        temperature: float = 0.05
    ) -> str:
        """
        Send the prompt and ordered image attachments.

        Args:
            prompt: Fully assembled prompt text
            images: Screenshot blocks in journey order
            temperature: Sampling temperature

        Returns:
            The raw text completion
        """
        pass

    def __repr__(self):
        return f"<{self.__class__.__name__}(name='{self.name}')>"
