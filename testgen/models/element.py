"""
UI Element and Domain Data Models
"""
from typing import List
from pydantic import BaseModel, Field


CATEGORIES = (
    "interactive",
    "navigation",
    "form",
    "structure",
    "data",
    "content",
    "feedback",
    "unknown",
)


class UiElementCandidate(BaseModel):
    """A UI element extracted from one screenshot's OCR text."""

    id: str = Field(..., description="<screenshot index>-<line index or pattern>")
    text: str = Field(..., description="Raw OCR text")
    label: str = Field(default="", description="Auto label, editable during review")
    type: str = Field(default="text", description="button, link, menu, input, ...")
    category: str = Field(default="unknown", description="One of CATEGORIES")
    priority: int = Field(default=3, ge=1, le=4, description="1 = highest")

    # Grouped data patterns (emails, phones, dates, ids)
    grouped: bool = False
    examples: List[str] = Field(default_factory=list)
    count: int = Field(default=1, description="Matches absorbed into a grouped candidate")


class PageElements(BaseModel):
    """Classified elements of one screenshot, in journey order."""

    screenshot_index: int
    page_name: str
    elements: List[UiElementCandidate] = Field(default_factory=list)


class DomainProfile(BaseModel):
    """Advisory business-domain guess injected into the prompt."""

    domain: str
    functions: List[str] = Field(default_factory=list)
    test_areas: List[str] = Field(default_factory=list)
    score: int = 0
