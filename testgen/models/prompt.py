"""
Prompt Data Models
"""
from typing import List, Optional
from pydantic import BaseModel, Field

from .element import DomainProfile, PageElements


class ImageBlock(BaseModel):
    """One screenshot attachment, tagged with its page name."""

    index: int = Field(..., description="1-based position in the journey")
    page_name: str
    label: str = Field(..., description="Text block sent ahead of the image")
    image: Optional[bytes] = None
    media_type: str = "image/png"


class PromptBundle(BaseModel):
    """Fully assembled model input."""

    prompt: str
    images: List[ImageBlock] = Field(default_factory=list)
    domain: DomainProfile
    pages: List[PageElements] = Field(default_factory=list)
    estimated_test_cases: int = 0
