"""Backends package"""
from typing import Dict

from .base import ModelBackend
from .claude_backend import ClaudeBackend
from .ollama_backend import OllamaBackend
from ..models.request import ModelChoice


def default_backends() -> Dict[ModelChoice, ModelBackend]:
    """One backend instance per ModelChoice, configured from settings."""
    return {
        ModelChoice.CLAUDE: ClaudeBackend(),
        ModelChoice.OLLAMA: OllamaBackend(),
    }


__all__ = ["ModelBackend", "ClaudeBackend", "OllamaBackend", "default_backends"]
