"""Models package"""
from .test_case import TestCaseRecord, GenerationResult, GenerationResponse
from .element import UiElementCandidate, PageElements, DomainProfile
from .prompt import ImageBlock, PromptBundle
from .session import SessionRecord
from .request import (
    ModelChoice,
    ScreenshotInput,
    ScenarioContext,
    ElementCorrection,
    GenerationRequest,
)

__all__ = [
    "TestCaseRecord",
    "GenerationResult",
    "GenerationResponse",
    "UiElementCandidate",
    "PageElements",
    "DomainProfile",
    "ImageBlock",
    "PromptBundle",
    "ModelChoice",
    "ScreenshotInput",
    "ScenarioContext",
    "ElementCorrection",
    "GenerationRequest",
    "SessionRecord",
]
