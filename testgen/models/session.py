"""
Session Data Model
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from .request import ElementCorrection, ModelChoice, ScenarioContext


class SessionRecord(BaseModel):
    """Inputs retained so a later regeneration can skip the upload."""

    session_id: str = ""
    ocr_results: List[str]
    screenshot_count: int
    page_names: List[str]
    screenshot_digests: List[str] = Field(default_factory=list)
    model: ModelChoice = ModelChoice.CLAUDE
    scenario_context: Optional[ScenarioContext] = None
    corrections: List[ElementCorrection] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
