"""
Test Case Data Models
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class TestCaseRecord(BaseModel):
    """A single normalized manual test case."""

    __test__ = False  # keep pytest from collecting this model

    type: str = Field(default="Functional", description="Functional, Integration, End-to-End or UI")
    title: str = Field(default="Untitled Test Case", description="Business-facing title")
    preconditions: str = Field(default="", description="Setup required before the steps")
    test_steps: str = Field(default="", alias="testSteps", description="Numbered list of steps")
    test_data: str = Field(default="", alias="testData", description="Bullet list of data values")
    expected_results: str = Field(default="", alias="expectedResults", description="Bullet list of outcomes")

    def summary(self) -> str:
        """One-line summary used by the categorized views."""
        return f"{self.title}: {self.test_steps}"

    class Config:
        populate_by_name = True


class GenerationResult(BaseModel):
    """Parsed model output plus categorized one-line views."""

    all_test_cases: List[TestCaseRecord] = Field(default_factory=list, alias="allTestCases")
    functional: List[str] = Field(default_factory=list)
    end_to_end: List[str] = Field(default_factory=list, alias="endToEnd")
    integration: List[str] = Field(default_factory=list)
    ui: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class GenerationResponse(GenerationResult):
    """A GenerationResult plus the session handle and configuration echo."""

    session_id: Optional[str] = None
    configuration: Dict[str, Any] = Field(default_factory=dict)
    cached: bool = False
