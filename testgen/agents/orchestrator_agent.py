"""
Orchestrator Agent - Coordinates the screenshot to test case pipeline
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .base_agent import BaseAgent
from .dispatcher_agent import DispatcherAgent
from .element_classifier_agent import ElementClassifierAgent
from .prompt_builder_agent import PromptBuilderAgent, estimate_test_cases
from .response_parser_agent import ResponseParserAgent
from ..backends import ModelBackend
from ..config import settings
from ..exceptions import InvalidRequestError, OcrFailure
from ..models.request import (
    ElementCorrection,
    GenerationRequest,
    ModelChoice,
    ScenarioContext,
    ScreenshotInput,
)
from ..models.session import SessionRecord
from ..models.test_case import GenerationResponse
from ..ocr import EasyOcrEngine, OcrEngine
from ..store import GenerationCache, SessionStore
from ..utils.helpers import stable_hash


class OrchestratorAgent(BaseAgent):
    """
    Runs the generation pipeline:
    - OCR each screenshot in journey order
    - Classify elements, detect the domain and assemble the prompt
    - Dispatch through the result cache (single-flight per key)
    - Parse and normalize the reply
    - Remember the inputs under a session for later regeneration

    Collaborators are injected so one service process owns one cache and
    one session store.
    """

    def __init__(
        self,
        backends: Optional[Dict[ModelChoice, ModelBackend]] = None,
        ocr_engine: Optional[OcrEngine] = None,
        cache: Optional[GenerationCache] = None,
        sessions: Optional[SessionStore] = None,
        classifier: Optional[ElementClassifierAgent] = None,
        prompt_builder: Optional[PromptBuilderAgent] = None,
        dispatcher: Optional[DispatcherAgent] = None,
        parser: Optional[ResponseParserAgent] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        super().__init__(
            name="Orchestrator",
            description="Coordinates OCR, prompt assembly, dispatch and parsing"
        )
        self.ocr_engine = ocr_engine or EasyOcrEngine()
        self.cache = cache if cache is not None else GenerationCache()
        self.sessions = sessions if sessions is not None else SessionStore()
        self.classifier = classifier or ElementClassifierAgent()
        self.prompt_builder = prompt_builder or PromptBuilderAgent(classifier=self.classifier)
        self.dispatcher = dispatcher or DispatcherAgent(backends=backends, sleep=sleep)
        self.parser = parser or ResponseParserAgent()
        self.key_includes_context = settings.CACHE_KEY_INCLUDES_CONTEXT

    async def execute(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """Execute orchestration."""
        if context.get("session_id"):
            response = await self.regenerate(
                session_id=context["session_id"],
                scenario_context=context.get("scenario_context"),
                corrections=context.get("corrections")
            )
        else:
            response = await self.generate(context["request"])
        return {"response": response}

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def generate(
        self,
        request: GenerationRequest,
        session_id: Optional[str] = None
    ) -> GenerationResponse:
        """
        Generate test cases for one request.

        Args:
            request: Screenshots, OCR text, page names and configuration
            session_id: Existing session to update instead of creating one

        Returns:
            GenerationResponse with records, categorized views, the session
            handle and the configuration echo. A replayed response matches
            the original except for ``cached``, which is True on replay.

        Raises:
            InvalidRequestError: before any dispatch, on shape violations
            TransientBackendError, FatalBackendError, MalformedResponseError
        """
        self.validate(request)

        key = self.cache_key(request)
        estimated = estimate_test_cases(request.scenario_context)
        temperature = (
            settings.REGENERATE_TEMPERATURE if request.force_regenerate else settings.TEMPERATURE
        )
        self.log_info(
            f"Generating for {len(request.screenshots)} screenshots with {request.model.value} "
            f"(force={request.force_regenerate}, key={key[:12]})"
        )

        async def produce() -> GenerationResponse:
            built = await self.prompt_builder.execute({
                "screenshots": request.screenshots,
                "ocr_results": request.ocr_results,
                "page_names": request.page_names,
                "scenario_context": request.scenario_context,
                "corrections": request.corrections
            })
            bundle = built["prompt"]
            dispatched = await self.dispatcher.execute({
                "prompt": bundle.prompt,
                "images": bundle.images,
                "model": request.model,
                "temperature": temperature
            })
            result = (await self.parser.execute(dispatched))["result"]
            handle = self._remember_session(request, session_id)
            return GenerationResponse(**result.model_dump(), session_id=handle)

        response, fresh = await self.cache.get_or_create(
            key, produce, force=request.force_regenerate
        )
        self.log_info(
            f"Returning {len(response.all_test_cases)} test cases "
            f"({'fresh' if fresh else 'cached'}, session {response.session_id})"
        )
        return response.model_copy(update={
            "configuration": self.configuration(request, estimated),
            "cached": not fresh
        })

    async def regenerate(
        self,
        session_id: str,
        scenario_context: Optional[ScenarioContext] = None,
        corrections: Optional[List[ElementCorrection]] = None,
        model: Optional[ModelChoice] = None
    ) -> GenerationResponse:
        """
        Regenerate from a stored session, always bypassing the cache.

        A missing scenario context or corrections list reuses the one the
        session last ran with.
        """
        record = self.sessions.require(session_id)
        self.log_info(f"Regenerating from session {session_id}")

        digests = list(record.screenshot_digests)
        digests += [""] * (record.screenshot_count - len(digests))
        screenshots = [
            ScreenshotInput(name=record.page_names[i], digest=digests[i])
            for i in range(record.screenshot_count)
        ]

        request = GenerationRequest(
            screenshots=screenshots,
            ocr_results=list(record.ocr_results),
            page_names=list(record.page_names),
            scenario_context=scenario_context or record.scenario_context or ScenarioContext(),
            model=model or record.model,
            force_regenerate=True,
            corrections=corrections if corrections is not None else list(record.corrections)
        )
        return await self.generate(request, session_id=session_id)

    async def extract_elements(
        self,
        screenshots: List[ScreenshotInput],
        page_names: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """
        Run OCR and classification only, for reviewer corrections.

        Returns:
            {"session_id", "pages"} where pages holds one PageElements per
            screenshot
        """
        self._check_count(len(screenshots))
        names = self._names_for(screenshots, page_names)
        ocr_results = await self.extract_text(screenshots)
        classified = await self.classifier.execute({
            "ocr_results": ocr_results,
            "page_names": names
        })
        pages = classified["pages"]

        handle = self.sessions.create(SessionRecord(
            ocr_results=ocr_results,
            screenshot_count=len(screenshots),
            page_names=names,
            screenshot_digests=[shot.digest for shot in screenshots]
        ))
        self.log_info(
            f"Extracted {sum(len(p.elements) for p in pages)} elements "
            f"from {len(pages)} screenshots (session {handle})"
        )
        return {"session_id": handle, "pages": pages}

    # ------------------------------------------------------------------
    # Request assembly
    # ------------------------------------------------------------------

    async def build_request(
        self,
        screenshots: List[ScreenshotInput],
        page_names: Optional[List[str]] = None,
        scenario_context: Optional[ScenarioContext] = None,
        model: ModelChoice = ModelChoice.CLAUDE,
        force_regenerate: bool = False,
        corrections: Optional[List[ElementCorrection]] = None
    ) -> GenerationRequest:
        """OCR the uploads and assemble a GenerationRequest."""
        self._check_count(len(screenshots))
        ocr_results = await self.extract_text(screenshots)
        return GenerationRequest(
            screenshots=screenshots,
            ocr_results=ocr_results,
            page_names=self._names_for(screenshots, page_names),
            scenario_context=scenario_context or ScenarioContext(),
            model=model,
            force_regenerate=force_regenerate,
            corrections=corrections or []
        )

    async def extract_text(self, screenshots: List[ScreenshotInput]) -> List[str]:
        """
        OCR screenshots one at a time. A failed image yields empty text and
        never drops its slot.
        """
        results = []
        for i, shot in enumerate(screenshots):
            if not shot.image:
                self.log_warning(f"Screenshot {i + 1} ({shot.name}) has no image data")
                results.append("")
                continue

            self.log_info(f"OCR {i + 1}/{len(screenshots)}: {shot.name}")
            try:
                text = await asyncio.to_thread(self.ocr_engine.recognize, shot.image)
            except OcrFailure as e:
                self.log_warning(f"OCR failed for {shot.name}: {e}")
                text = ""
            self.log_debug(f"OCR {shot.name}: {len(text)} chars")
            results.append(text)
        return results

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def validate(self, request: GenerationRequest):
        """Reject requests that violate the shape invariants."""
        count = len(request.screenshots)
        self._check_count(count)
        if not count == len(request.ocr_results) == len(request.page_names):
            raise InvalidRequestError(
                f"Mismatched inputs: {count} screenshots, "
                f"{len(request.ocr_results)} OCR results, {len(request.page_names)} page names"
            )
        if not request.scenario_context.selected_test_types():
            raise InvalidRequestError("At least one test type must be selected")

    def cache_key(self, request: GenerationRequest) -> str:
        """Content hash of the inputs that determine the generated result."""
        payload: Dict[str, Any] = {
            "screenshots": [shot.digest for shot in request.screenshots],
            "ocrResults": request.ocr_results,
            "pageNames": request.page_names,
            "model": request.model.value,
        }
        if request.corrections:
            payload["corrections"] = [c.model_dump() for c in request.corrections]
        if self.key_includes_context:
            payload["scenarioContext"] = request.scenario_context.model_dump()
        return stable_hash(payload)

    @staticmethod
    def configuration(request: GenerationRequest, estimated: int) -> Dict[str, Any]:
        context = request.scenario_context
        return {
            "aiModel": request.model.value,
            "testingIntent": context.testing_intent,
            "coverageLevel": context.coverage_level,
            "testTypes": context.selected_test_types(),
            "userStory": context.user_story,
            "acceptanceCriteria": context.acceptance_criteria,
            "businessRules": context.business_rules,
            "edgeCases": context.edge_cases,
            "testEnvironment": context.test_environment,
            "screenshotCount": len(request.screenshots),
            "estimatedTestCases": estimated,
            "corrections": len(request.corrections),
        }

    def _remember_session(self, request: GenerationRequest, session_id: Optional[str]) -> str:
        if session_id:
            record = self.sessions.require(session_id)
            record.model = request.model
            record.scenario_context = request.scenario_context
            record.corrections = list(request.corrections)
            self.sessions.update(record)
            return session_id

        return self.sessions.create(SessionRecord(
            ocr_results=list(request.ocr_results),
            screenshot_count=len(request.screenshots),
            page_names=list(request.page_names),
            screenshot_digests=[shot.digest for shot in request.screenshots],
            model=request.model,
            scenario_context=request.scenario_context,
            corrections=list(request.corrections)
        ))

    @staticmethod
    def _check_count(count: int):
        if not settings.MIN_SCREENSHOTS <= count <= settings.MAX_SCREENSHOTS:
            raise InvalidRequestError(
                f"Between {settings.MIN_SCREENSHOTS} and {settings.MAX_SCREENSHOTS} "
                f"screenshots are required, got {count}"
            )

    @staticmethod
    def _names_for(
        screenshots: List[ScreenshotInput],
        page_names: Optional[List[str]]
    ) -> List[str]:
        page_names = page_names or []
        names = []
        for i, shot in enumerate(screenshots):
            name = page_names[i].strip() if i < len(page_names) and page_names[i] else ""
            names.append(name or shot.name or f"Page {i + 1}")
        return names
