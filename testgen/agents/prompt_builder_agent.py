"""
Prompt Builder Agent - Assembles the test case generation prompt
"""
from typing import Any, Dict, List, Optional

from langchain_core.prompts import PromptTemplate

from .base_agent import BaseAgent
from .domain_detector_agent import DomainDetectorAgent
from .element_classifier_agent import ElementClassifierAgent
from ..models.element import PageElements
from ..models.prompt import ImageBlock, PromptBundle
from ..models.request import ElementCorrection, ScenarioContext, ScreenshotInput
from ..utils.helpers import round_half_up


INTENT_MULTIPLIERS = {
    "form-validation": 15,
    "user-journey": 8,
    "integration": 12,
    "business-logic": 10,
    "comprehensive": 18,
}
DEFAULT_INTENT_MULTIPLIER = 12

COVERAGE_MULTIPLIERS = {
    "essential": 0.6,
    "comprehensive": 1.0,
    "exhaustive": 1.4,
}
DEFAULT_COVERAGE_MULTIPLIER = 1.0

INTENT_SECTIONS = {
    "comprehensive": """**TESTING INTENT: COMPREHENSIVE TESTING**
Cover the application end to end:
- Complete business workflows across every page in the sequence
- Form inputs, validation rules and error messages
- Navigation between pages, including going back and skipping steps
- Integration points where data entered on one page appears on another
- Business rules, calculations and state changes""",
    "form-validation": """**TESTING INTENT: FORM VALIDATION FOCUS**
Concentrate on every input the screenshots show:
- Required fields, formats, lengths and allowed characters
- Error messages and how the user recovers from them
- Dropdowns, checkboxes, radio buttons and their combinations
- Submitting with valid, invalid and partially completed data
- Data types and boundary values for each field""",
    "user-journey": """**TESTING INTENT: USER JOURNEY TESTING**
Follow the page sequence as a real user would:
- Multi-step processes from the first page to the final confirmation
- Alternative paths, interrupted flows and returning to earlier steps
- State that must carry over between pages
- What the user sees at each transition""",
    "integration": """**TESTING INTENT: FEATURE INTEGRATION**
Focus on how components work together:
- Data created on one page and consumed on another
- Interactions between modules visible in the screenshots
- Consistency of shared data (lists, counters, summaries)
- Failure of one component and its effect on the rest of the flow""",
    "business-logic": """**TESTING INTENT: BUSINESS LOGIC VALIDATION**
Focus on rules and decisions:
- Calculations, totals and derived values
- Permission and status rules that allow or block actions
- Decision points that change the flow
- Rule violations and how the application rejects them""",
}

COVERAGE_CLAUSES = {
    "essential": "**COVERAGE LEVEL: ESSENTIAL** - Generate test cases for the core happy-path scenarios only.",
    "comprehensive": "**COVERAGE LEVEL: COMPREHENSIVE** - Cover the happy paths plus the common edge cases and error paths.",
    "exhaustive": "**COVERAGE LEVEL: EXHAUSTIVE** - Aim for complete coverage, including rare edge cases, boundary values and unusual sequences.",
}

TEST_TYPE_LINES = {
    "positive": "- Positive testing: valid inputs and the expected successful flows",
    "negative": "- Negative testing: invalid inputs, rejected operations and error handling",
    "edge_cases": "- Edge cases: boundary values, empty states, limits and unusual timing",
}

CONTEXT_SECTIONS = (
    ("user_story", "USER STORY"),
    ("acceptance_criteria", "ACCEPTANCE CRITERIA"),
    ("business_rules", "BUSINESS RULES"),
    ("edge_cases", "KNOWN EDGE CASES"),
    ("test_environment", "TEST ENVIRONMENT"),
)

NO_OCR_TEXT = "No OCR text provided - using visual analysis only."

PROMPT_TEMPLATE = PromptTemplate.from_template("""You are an expert QA engineer writing manual test cases for testers who have never used this application. You are given text extracted from the application's screenshots by OCR, classified into UI elements, and the screenshots themselves.

**APPLICATION DOMAIN (advisory):**
Detected Application Domain: {domain}
Key Business Functions: {functions}
Focus Areas for Testing: {test_areas}

**DETECTED UI ELEMENTS PER PAGE:**
{page_text}

**USER WORKFLOW SEQUENCE:**
{page_flow}

The pages above are listed in the exact order of the user journey. Test cases must follow this order when they span several pages.

{intent_section}

{coverage_clause}

**TEST TYPES TO INCLUDE:**
{test_type_lines}
{context_sections}
**TEST CASE STRUCTURE:**
Each test case must include:
- "type": One of End-to-End, Integration or Functional
- "title": Business-friendly title describing what is verified
- "preconditions": Setup and starting state (bullet format)
- "testSteps": Every action from the first page to the final result (numbered format)
- "testData": Realistic, specific values (bullet format)
- "expectedResults": Observable outcomes with clear success criteria (bullet format)

**RULES:**
- Refer to pages by their names: {page_name_examples}. Never write "Screenshot 1" or "Image 2".
- Reference UI elements by the labels detected above.
- Each test case must be self-contained and start from a known page.

IMPORTANT: Your response must be a single, valid JSON object containing a "testCases" array. Do not include explanatory text or markdown outside of the JSON object.

Example response format:
{{
  "testCases": [
    {{
      "type": "End-to-End",
      "title": "Verify a user can complete the workflow from {first_page} to {last_page}",
      "preconditions": "• User account exists\\n• Application is reachable",
      "testSteps": "1. Open the {first_page}\\n2. Complete the required fields\\n3. Continue to the {last_page}",
      "testData": "• Username: testuser@example.com\\n• Password: SecurePass123",
      "expectedResults": "• The {last_page} is displayed\\n• No error messages appear"
    }}
  ]
}}""")


def estimate_test_cases(context: ScenarioContext) -> int:
    """
    Display-only estimate of how many test cases a configuration yields.

    round(intent * coverage * (0.3 * selected_types + 0.4))
    """
    base = INTENT_MULTIPLIERS.get(context.testing_intent, DEFAULT_INTENT_MULTIPLIER)
    coverage = COVERAGE_MULTIPLIERS.get(context.coverage_level, DEFAULT_COVERAGE_MULTIPLIER)
    type_multiplier = len(context.selected_test_types()) * 0.3 + 0.4
    return round_half_up(base * coverage * type_multiplier)


class PromptBuilderAgent(BaseAgent):
    """
    Builds the full generation prompt from classified OCR text, the page
    sequence, the detected domain and the scenario configuration.
    """

    def __init__(
        self,
        classifier: Optional[ElementClassifierAgent] = None,
        domain_detector: Optional[DomainDetectorAgent] = None
    ):
        super().__init__(
            name="PromptBuilder",
            description="Assembles domain and intent aware prompts"
        )
        self.classifier = classifier or ElementClassifierAgent()
        self.domain_detector = domain_detector or DomainDetectorAgent()

    async def execute(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """Execute prompt assembly."""
        bundle = self.build(
            screenshots=context.get("screenshots", []),
            ocr_results=context.get("ocr_results", []),
            page_names=context.get("page_names", []),
            scenario_context=context.get("scenario_context") or ScenarioContext(),
            corrections=context.get("corrections", [])
        )
        return {"prompt": bundle}

    def build(
        self,
        screenshots: List[ScreenshotInput],
        ocr_results: List[str],
        page_names: List[str],
        scenario_context: ScenarioContext,
        corrections: Optional[List[ElementCorrection]] = None
    ) -> PromptBundle:
        """
        Assemble the prompt and the per-image blocks.

        Args:
            screenshots: Screenshots in journey order
            ocr_results: OCR text per screenshot
            page_names: Page name per screenshot
            scenario_context: Testing intent, coverage and free-text context
            corrections: Reviewer relabelings of detected elements

        Returns:
            PromptBundle with the prompt text, image blocks and estimate
        """
        corrections = corrections or []
        names = self._page_names(page_names, max(len(screenshots), len(ocr_results)))

        enhanced_ocr = self.classifier.apply_corrections(ocr_results, corrections)
        pages = self.classifier.classify_pages(enhanced_ocr, names)
        domain = self.domain_detector.detect(names, ocr_results)

        prompt = PROMPT_TEMPLATE.format(
            domain=domain.domain,
            functions=", ".join(domain.functions),
            test_areas=", ".join(domain.test_areas),
            page_text=self._render_pages(pages, ocr_results),
            page_flow="\n".join(f"{i + 1}. {name}" for i, name in enumerate(names)),
            intent_section=INTENT_SECTIONS.get(
                scenario_context.testing_intent, INTENT_SECTIONS["comprehensive"]
            ),
            coverage_clause=COVERAGE_CLAUSES.get(
                scenario_context.coverage_level, COVERAGE_CLAUSES["comprehensive"]
            ),
            test_type_lines="\n".join(
                TEST_TYPE_LINES[t] for t in scenario_context.selected_test_types()
            ),
            context_sections=self._render_context(scenario_context, corrections),
            page_name_examples=", ".join(f'"{name}"' for name in names[:3]),
            first_page=names[0] if names else "first page",
            last_page=names[-1] if names else "last page"
        )

        estimated = estimate_test_cases(scenario_context)
        self.log_info(
            f"Prompt assembled: {len(prompt)} chars, {len(pages)} pages, "
            f"intent={scenario_context.testing_intent}, estimated ~{estimated} test cases"
        )

        return PromptBundle(
            prompt=prompt,
            images=self.build_image_blocks(screenshots, names),
            domain=domain,
            pages=pages,
            estimated_test_cases=estimated
        )

    def build_image_blocks(
        self,
        screenshots: List[ScreenshotInput],
        page_names: List[str]
    ) -> List[ImageBlock]:
        """Tag each screenshot with its page name, in journey order."""
        blocks = []
        for i, shot in enumerate(screenshots):
            page_name = page_names[i] if i < len(page_names) else shot.name
            if shot.image is not None:
                label = f"--- {page_name} (Screenshot {i + 1}) ---"
            else:
                label = f"--- {page_name} (Screenshot {i + 1}) - IMAGE UNAVAILABLE ---"
            blocks.append(ImageBlock(
                index=i + 1,
                page_name=page_name,
                label=label,
                image=shot.image,
                media_type=shot.media_type
            ))
        return blocks

    @staticmethod
    def _page_names(page_names: List[str], count: int) -> List[str]:
        names = []
        for i in range(count):
            name = page_names[i].strip() if i < len(page_names) and page_names[i] else ""
            names.append(name or f"Page {i + 1}")
        return names

    @staticmethod
    def _render_pages(pages: List[PageElements], ocr_results: List[str]) -> str:
        if not any(text and text.strip() for text in ocr_results):
            return NO_OCR_TEXT

        sections = []
        for page in pages:
            lines = [f"--- {page.page_name} ---"]
            if not page.elements:
                lines.append("(no readable text detected - rely on the screenshot)")
            for element in page.elements:
                if element.grouped:
                    lines.append(
                        f"- [{element.category}/{element.type}] {element.label} "
                        f"(e.g. {', '.join(element.examples)}; {element.count} found)"
                    )
                else:
                    lines.append(f"- [{element.category}/{element.type}] {element.label}")
            sections.append("\n".join(lines))
        return "\n\n".join(sections)

    @staticmethod
    def _render_context(
        scenario_context: ScenarioContext,
        corrections: List[ElementCorrection]
    ) -> str:
        sections = []
        for field_name, heading in CONTEXT_SECTIONS:
            value = getattr(scenario_context, field_name)
            if value and value.strip():
                sections.append(f"**{heading}:**\n{value.strip()}")

        labeled = [c for c in corrections if c.label.strip()]
        if labeled:
            lines = "\n".join(
                f'• "{c.text}" is identified as {c.type}: {c.label.strip()}' for c in labeled
            )
            sections.append(
                "**USER-PROVIDED ELEMENT CORRECTIONS:**\n"
                f"{lines}\n"
                "Use these corrected labels instead of the raw OCR text when referring to these elements."
            )

        if not sections:
            return ""
        return "\n" + "\n\n".join(sections) + "\n"
