"""
Element Classifier Agent - Turns raw OCR text into UI element candidates
"""
import re
from typing import Any, Dict, List, Optional, Tuple

from .base_agent import BaseAgent
from ..models.element import UiElementCandidate, PageElements
from ..models.request import ElementCorrection


MIN_LINE_LENGTH = 2
NOISE_MAX_LENGTH = 10
HEADER_MAX_LENGTH = 20
DATA_MAX_LENGTH = 50

INTERACTIVE_PATTERN = re.compile(
    r"\b(button|submit|save|cancel|delete|remove|edit|add|create|update|confirm|"
    r"send|apply|continue|next|back|sign ?in|sign ?up|log ?in|log ?out|register|"
    r"search|upload|download|ok)\b",
    re.IGNORECASE
)
LINK_PATTERN = re.compile(
    r"\b(link|navigate|go to|view|open|learn more|see all|show more|details|click)\b",
    re.IGNORECASE
)
NAVIGATION_PATTERN = re.compile(
    r"\b(menu|nav|navigation|breadcrumbs?|home|dashboard|settings|profile|tabs?|sidebar)\b",
    re.IGNORECASE
)
FORM_PATTERN = re.compile(
    r"\b(input|field|dropdown|select|checkbox|radio|textarea|enter|choose|password|username)\b",
    re.IGNORECASE
)
TABLE_HEADER_PATTERN = re.compile(
    r"^(#|no\.?|id|name|status|date|type|actions?|total|amount|qty|quantity|price|"
    r"description|email|phone|created( at| on)?|updated( at| on)?|owner|role)$",
    re.IGNORECASE
)

# Stop words and clock/relative timestamps; only applied to short lines
NOISE_PATTERN = re.compile(
    r"^(the|and|or|of|to|a|an|in|on|at|by|for|is|it|am|pm|just now|today|yesterday|"
    r"\d{1,2}:\d{2}(:\d{2})?\s*([ap]\.?m\.?)?|\d+\s*(s|m|h|d|min|mins|hr|hrs)\s+ago)$",
    re.IGNORECASE
)
NUMERIC_PATTERN = re.compile(r"^[\d\s.,]+$")
EMAIL_LINE_PATTERN = re.compile(r"^[\w.+-]+@[\w-]+(\.[\w-]+)+$")

# Checked in order; the first match decides the group
DATA_PATTERNS: Tuple[Tuple[str, "re.Pattern", str], ...] = (
    ("email", re.compile(r"[\w.+-]+@[\w-]+(\.[\w-]+)+"), "Email addresses"),
    ("date", re.compile(
        r"\b(\d{4}[-/.]\d{1,2}[-/.]\d{1,2}|\d{1,2}[-/.]\d{1,2}[-/.]\d{2,4}|"
        r"(jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?\s+\d{1,2},?\s+\d{4})\b",
        re.IGNORECASE
    ), "Dates"),
    ("phone", re.compile(r"\+?\d[\d\s().-]{7,}\d"), "Phone numbers"),
    ("numeric_id", re.compile(r"(?<![\w.])#?\d{4,}(?![\w.])"), "Numeric IDs"),
)


class ElementClassifierAgent(BaseAgent):
    """
    Classifies OCR lines into categorized, deduplicated UI element candidates.

    High-volume data (emails, dates, phone numbers, numeric ids) collapses
    into one grouped candidate per pattern per screenshot so tables full of
    records do not drown out buttons and form fields.
    """

    def __init__(self):
        super().__init__(
            name="ElementClassifier",
            description="Extracts and filters UI element candidates from OCR text"
        )

    async def execute(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """Classify every page's OCR text."""
        pages = self.classify_pages(
            context.get("ocr_results", []),
            context.get("page_names", [])
        )
        return {"pages": pages}

    def classify_pages(
        self,
        ocr_results: List[str],
        page_names: List[str]
    ) -> List[PageElements]:
        """
        Classify the OCR text of each screenshot, preserving journey order.

        Args:
            ocr_results: One OCR text blob per screenshot
            page_names: Display name per screenshot

        Returns:
            One PageElements per screenshot
        """
        pages = []
        for index, text in enumerate(ocr_results):
            page_name = page_names[index] if index < len(page_names) else f"Page {index + 1}"
            elements = self.classify(text, index, page_name)
            pages.append(PageElements(
                screenshot_index=index,
                page_name=page_name,
                elements=elements
            ))
        return pages

    def classify(
        self,
        ocr_text: Optional[str],
        screenshot_index: int = 0,
        page_name: str = ""
    ) -> List[UiElementCandidate]:
        """
        Classify one screenshot's OCR text.

        Args:
            ocr_text: Raw multi-line OCR output (may be empty)
            screenshot_index: Position of the screenshot in the journey
            page_name: Display name, used for logging only

        Returns:
            Candidates sorted by priority, original line order within a tier
        """
        if not isinstance(ocr_text, str) or not ocr_text.strip():
            return []

        lines = [line.strip() for line in ocr_text.splitlines() if line.strip()]
        candidates: List[UiElementCandidate] = []
        grouped: Dict[str, UiElementCandidate] = {}
        seen = set()

        for line_index, text in enumerate(lines):
            if len(text) < MIN_LINE_LENGTH:
                continue
            key = text.lower()
            if key in seen:
                continue
            seen.add(key)

            if len(text) < NOISE_MAX_LENGTH and NOISE_PATTERN.match(text):
                continue

            element_id = f"{screenshot_index}-{line_index}"
            # A bare address is data even when its local part is a vocabulary word
            if EMAIL_LINE_PATTERN.match(text):
                candidate = None
            else:
                candidate = self._match_vocabulary(text, element_id)

            if candidate is None:
                pattern = self._match_data_pattern(text)
                if pattern is not None:
                    pattern_name, pattern_label = pattern
                    existing = grouped.get(pattern_name)
                    if existing is not None:
                        existing.count += 1
                        continue
                    candidate = UiElementCandidate(
                        id=f"{screenshot_index}-{pattern_name}",
                        text=text,
                        label=pattern_label,
                        type=pattern_name,
                        category="data",
                        priority=4,
                        grouped=True,
                        examples=[text]
                    )
                    grouped[pattern_name] = candidate
                elif len(text) <= DATA_MAX_LENGTH and not NUMERIC_PATTERN.match(text):
                    candidate = UiElementCandidate(
                        id=element_id,
                        text=text,
                        label=text,
                        type="text",
                        category="data",
                        priority=3
                    )
                else:
                    continue

            candidates.append(candidate)

        candidates.sort(key=lambda c: c.priority)
        self.log_debug(
            f"{page_name or screenshot_index}: {len(candidates)} candidates "
            f"from {len(lines)} lines ({len(grouped)} grouped)"
        )
        return candidates

    def _match_vocabulary(self, text: str, element_id: str) -> Optional[UiElementCandidate]:
        """Apply the vocabulary rules in precedence order."""
        if INTERACTIVE_PATTERN.search(text):
            return UiElementCandidate(
                id=element_id, text=text, label=text,
                type="button", category="interactive", priority=1
            )
        if LINK_PATTERN.search(text):
            return UiElementCandidate(
                id=element_id, text=text, label=text,
                type="link", category="interactive", priority=1
            )
        if NAVIGATION_PATTERN.search(text):
            return UiElementCandidate(
                id=element_id, text=text, label=text,
                type="menu", category="navigation", priority=1
            )
        if FORM_PATTERN.search(text) or ":" in text or text.endswith("*"):
            return UiElementCandidate(
                id=element_id, text=text, label=self._form_label(text),
                type="input", category="form", priority=2
            )
        if len(text) < HEADER_MAX_LENGTH and TABLE_HEADER_PATTERN.match(text):
            return UiElementCandidate(
                id=element_id, text=text, label=text,
                type="table_header", category="structure", priority=2
            )
        return None

    @staticmethod
    def _match_data_pattern(text: str) -> Optional[Tuple[str, str]]:
        for pattern_name, pattern, label in DATA_PATTERNS:
            if pattern.search(text):
                return pattern_name, label
        return None

    @staticmethod
    def _form_label(text: str) -> str:
        if text.endswith("*"):
            return f"{text.rstrip('*').strip().rstrip(':').strip()} (Required)"
        return text.rstrip(":").strip() or text

    def apply_corrections(
        self,
        ocr_results: List[str],
        corrections: List[ElementCorrection]
    ) -> List[str]:
        """
        Append reviewer corrections to the OCR text of their screenshots.

        Args:
            ocr_results: Original OCR text per screenshot
            corrections: Reviewer relabelings; empty labels are ignored

        Returns:
            New list of OCR texts, inputs untouched
        """
        enhanced = list(ocr_results)
        by_index: Dict[int, List[str]] = {}
        for correction in corrections:
            if not correction.label.strip():
                continue
            if not 0 <= correction.screenshot_index < len(enhanced):
                self.log_warning(f"Ignoring correction for unknown screenshot {correction.screenshot_index}")
                continue
            by_index.setdefault(correction.screenshot_index, []).append(
                f"{correction.text} → [{correction.type}: {correction.label.strip()}]"
            )

        for index, lines in by_index.items():
            enhanced[index] = enhanced[index] + "\n\n--- USER CORRECTIONS ---\n" + "\n".join(lines)
        return enhanced
