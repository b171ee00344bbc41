"""
Generation Request Data Models
"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator

from ..utils.helpers import compute_digest, guess_media_type


TESTING_INTENTS = (
    "comprehensive",
    "form-validation",
    "user-journey",
    "integration",
    "business-logic",
)

COVERAGE_LEVELS = ("essential", "comprehensive", "exhaustive")

TEST_TYPES = ("positive", "negative", "edge_cases")


class ModelChoice(str, Enum):
    """Interchangeable LLM backends."""

    CLAUDE = "claude"
    OLLAMA = "ollama"


class ScreenshotInput(BaseModel):
    """One screenshot in the user journey. List order is journey order."""

    name: str = Field(..., description="Display / page name")
    image: Optional[bytes] = Field(default=None, description="Raw image bytes, absent when rebuilt from a session")
    digest: str = Field(default="", description="Content identity of the image")
    media_type: str = Field(default="image/png")

    @model_validator(mode="after")
    def _fill_identity(self):
        if self.image is not None:
            if not self.digest:
                self.digest = compute_digest(self.image)
            self.media_type = guess_media_type(self.image)
        return self


class ScenarioContext(BaseModel):
    """Free-text context and testing configuration for a scenario."""

    user_story: Optional[str] = None
    acceptance_criteria: Optional[str] = None
    business_rules: Optional[str] = None
    edge_cases: Optional[str] = None
    test_environment: Optional[str] = None

    testing_intent: str = "comprehensive"
    coverage_level: str = "comprehensive"
    test_types: List[str] = Field(default_factory=lambda: list(TEST_TYPES))

    def selected_test_types(self) -> List[str]:
        """Known test types in the order given, unknown values dropped."""
        return [t for t in self.test_types if t in TEST_TYPES]


class ElementCorrection(BaseModel):
    """A reviewer's relabeling of one detected element."""

    screenshot_index: int
    text: str
    type: str = "unknown"
    label: str = ""


class GenerationRequest(BaseModel):
    """Everything needed for one pipeline run."""

    screenshots: List[ScreenshotInput]
    ocr_results: List[str]
    page_names: List[str]
    scenario_context: ScenarioContext = Field(default_factory=ScenarioContext)
    model: ModelChoice = ModelChoice.CLAUDE
    force_regenerate: bool = False
    corrections: List[ElementCorrection] = Field(default_factory=list)
