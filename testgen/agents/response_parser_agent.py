"""
Response Parser Agent - Turns raw model replies into validated test cases
"""
import json
import re
from typing import Any, Dict, List

from .base_agent import BaseAgent
from ..exceptions import MalformedResponseError
from ..models.test_case import GenerationResult, TestCaseRecord
from ..utils.helpers import truncate_text


FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
TRAILING_COMMA_PATTERN = re.compile(r",\s*([}\]])")
NUMBERED_PATTERN = re.compile(r"^\d+\.\s")
LEADING_NUMBER_PATTERN = re.compile(r"^\d+(?:\.\s+|\)\s*)")
SPLIT_PATTERN = re.compile(r"[,;\n]")
BULLET_MARKERS = ("•", "-", "*")
BULLET_PREFIX_PATTERN = re.compile(r"^(?:•\s*|[-*]\s+)")

EXCERPT_LENGTH = 500

DEFAULTS = {
    "title": "Untitled Test Case",
    "type": "Functional",
    "preconditions": "Standard system access required",
    "testSteps": "Test steps not specified",
    "testData": "Standard test data",
    "expectedResults": "Test should complete successfully",
}

# Canonical spelling per normalized type key
CANONICAL_TYPES = {
    "functional": "Functional",
    "endtoend": "End-to-End",
    "e2e": "End-to-End",
    "integration": "Integration",
    "ui": "UI",
}

BUCKETS = {
    "Functional": "functional",
    "End-to-End": "end_to_end",
    "Integration": "integration",
    "UI": "ui",
}


def type_key(value: str) -> str:
    return re.sub(r"[-\s_]", "", value.lower())


def format_numbered_list(text: str) -> str:
    """Renumber steps as '1. ...' lines unless already numbered."""
    if not text or NUMBERED_PATTERN.match(text):
        return text
    lines = [LEADING_NUMBER_PATTERN.sub("", part.strip()).strip() for part in SPLIT_PATTERN.split(text)]
    lines = [line for line in lines if line]
    if not lines:
        return text
    return "\n".join(f"{i + 1}. {line}" for i, line in enumerate(lines))


def format_bullet_list(text: str) -> str:
    """Prefix '• ' to each item unless any line already carries a bullet."""
    if not text:
        return text
    if any(line.strip().startswith(BULLET_MARKERS) for line in text.splitlines()):
        return text
    lines = [BULLET_PREFIX_PATTERN.sub("", part.strip()).strip() for part in SPLIT_PATTERN.split(text)]
    lines = [line for line in lines if line]
    if not lines:
        return text
    return "\n".join(f"• {line}" for line in lines)


class ResponseParserAgent(BaseAgent):
    """
    Extracts the JSON object from a model reply, validates the testCases
    array and normalizes every record. Parse failures are never retried
    here; they surface as MalformedResponseError.
    """

    def __init__(self):
        super().__init__(
            name="ResponseParser",
            description="Validates and normalizes model output into test case records"
        )

    async def execute(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """Execute parsing."""
        return {"result": self.parse(context.get("raw_response", ""))}

    def parse(self, raw: str) -> GenerationResult:
        """
        Parse a raw model reply.

        Args:
            raw: Text returned by the backend, possibly wrapped in prose or
                Markdown fences

        Returns:
            GenerationResult with normalized records and categorized views

        Raises:
            MalformedResponseError: if no usable testCases array is found
        """
        data = self._load_json(raw or "")

        test_cases = data.get("testCases") if isinstance(data, dict) else None
        if not isinstance(test_cases, list):
            self._fail("Invalid test case structure - missing testCases array", raw)

        records = []
        for index, item in enumerate(test_cases):
            if not isinstance(item, dict):
                self.log_warning(f"Skipping test case {index + 1}: not an object")
                continue
            records.append(self.normalize_record(item))

        if not records:
            self._fail("Model returned no usable test cases", raw)

        result = self.categorize(records)
        self.log_info(
            f"Parsed {len(records)} test cases "
            f"(functional={len(result.functional)}, endToEnd={len(result.end_to_end)}, "
            f"integration={len(result.integration)}, ui={len(result.ui)})"
        )
        return result

    def normalize_record(self, item: Dict[str, Any]) -> TestCaseRecord:
        """Coerce one raw record to strings with defaults and list formatting."""
        steps = item.get("testSteps")
        if self._is_blank(steps):
            steps = item.get("description")

        fields = {
            "title": self._as_text(item.get("title")) or DEFAULTS["title"],
            "type": self._canonical_type(self._as_text(item.get("type"))),
            "preconditions": self._as_text(item.get("preconditions")) or DEFAULTS["preconditions"],
            "testSteps": self._as_text(steps) or DEFAULTS["testSteps"],
            "testData": self._as_text(item.get("testData")) or DEFAULTS["testData"],
            "expectedResults": self._as_text(item.get("expectedResults")) or DEFAULTS["expectedResults"],
        }
        fields["testSteps"] = format_numbered_list(fields["testSteps"])
        fields["testData"] = format_bullet_list(fields["testData"])
        fields["expectedResults"] = format_bullet_list(fields["expectedResults"])
        return TestCaseRecord(**fields)

    @staticmethod
    def categorize(records: List[TestCaseRecord]) -> GenerationResult:
        """Group one-line summaries by record type; unknown types count as functional."""
        result = GenerationResult(all_test_cases=records)
        for record in records:
            bucket = BUCKETS.get(record.type, "functional")
            getattr(result, bucket).append(record.summary())
        return result

    def _load_json(self, raw: str) -> Any:
        text = raw.strip()

        if "```" in text:
            blocks = FENCE_PATTERN.findall(text)
            if blocks:
                text = next((b for b in blocks if "testCases" in b), blocks[0]).strip()

        json_start = text.find("{")
        json_end = text.rfind("}") + 1
        if json_start == -1 or json_end <= json_start:
            self._fail("No JSON object found in model response", raw)
        text = text[json_start:json_end]

        try:
            return json.loads(text)
        except json.JSONDecodeError as first_error:
            repaired = TRAILING_COMMA_PATTERN.sub(r"\1", text)
            try:
                data = json.loads(repaired)
            except json.JSONDecodeError:
                self._fail(f"Model response is not valid JSON: {first_error}", raw)
            self.log_debug("Parsed model response after removing trailing commas")
            return data

    def _fail(self, message: str, raw: str):
        excerpt = truncate_text(raw or "", EXCERPT_LENGTH)
        self.log_error(f"{message}. Raw excerpt: {excerpt!r}")
        raise MalformedResponseError(
            f"Failed to generate test cases: {message}. Please try again.",
            raw_excerpt=excerpt
        )

    @staticmethod
    def _canonical_type(value: str) -> str:
        if not value:
            return DEFAULTS["type"]
        return CANONICAL_TYPES.get(type_key(value), value)

    @staticmethod
    def _is_blank(value: Any) -> bool:
        return value is None or (isinstance(value, str) and not value.strip())

    @classmethod
    def _as_text(cls, value: Any) -> str:
        if cls._is_blank(value):
            return ""
        if isinstance(value, dict):
            return "\n".join(f"{key}: {cls._as_text(val)}" for key, val in value.items())
        if isinstance(value, list):
            return "\n".join(cls._as_text(v) for v in value if not cls._is_blank(v))
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value).strip()
