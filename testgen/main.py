"""
FastAPI Main Application - Screenshot Test Case Generator
"""
import json
import logging
from typing import Any, List, Optional

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from .config import settings
from .agents.orchestrator_agent import OrchestratorAgent
from .agents.prompt_builder_agent import estimate_test_cases
from .exceptions import (
    FatalBackendError,
    InvalidRequestError,
    MalformedResponseError,
    PipelineError,
    SessionNotFoundError,
    TransientBackendError,
)
from .models.request import ElementCorrection, ModelChoice, ScenarioContext, ScreenshotInput
from .utils.helpers import timestamp_now


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


app = FastAPI(
    title=settings.APP_NAME,
    description="Generates manual test cases from application screenshots",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# One pipeline (cache + session store) per process
_orchestrator: Optional[OrchestratorAgent] = None


def get_orchestrator() -> OrchestratorAgent:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = OrchestratorAgent()
    return _orchestrator


# Request Models
class RegenerateRequest(BaseModel):
    session_id: str
    scenario_context: Optional[ScenarioContext] = None
    corrections: Optional[List[ElementCorrection]] = None
    model: Optional[ModelChoice] = None


# Error mapping
ERROR_STATUS = (
    (InvalidRequestError, 400),
    (SessionNotFoundError, 404),
    (TransientBackendError, 503),
    (MalformedResponseError, 502),
    (FatalBackendError, 500),
)


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    status_code = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 500)
    body = exc.to_dict()
    headers = {}

    if isinstance(exc, TransientBackendError):
        body["error"] = "AI service is temporarily overloaded. Please wait a moment and try again."
        body["details"] = exc.message
        body["_retry"] = True
        body["_retryAfter"] = exc.retry_after
        headers["Retry-After"] = str(int(exc.retry_after))
    elif isinstance(exc, MalformedResponseError):
        body["details"] = "AI service returned a response in an unexpected format"
        body["_retry"] = True
    elif isinstance(exc, FatalBackendError):
        logger.error(f"Backend failure requires operator attention: {exc.message}")

    logger.warning(f"{request.url.path} failed with {status_code}: {exc.message}")
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def _parse_json_field(raw: Optional[str], field: str, default: Any) -> Any:
    if raw is None or not raw.strip():
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidRequestError(f"'{field}' must be valid JSON: {e}") from e


def _parse_page_names(raw: Optional[str]) -> List[str]:
    names = _parse_json_field(raw, "pageNames", [])
    if not isinstance(names, list):
        raise InvalidRequestError("'pageNames' must be a JSON array of strings")
    return [str(name) if name is not None else "" for name in names]


def _parse_model(raw: Optional[str]) -> ModelChoice:
    try:
        return ModelChoice((raw or settings.DEFAULT_MODEL).strip().lower())
    except ValueError as e:
        choices = ", ".join(m.value for m in ModelChoice)
        raise InvalidRequestError(f"Unknown aiModel '{raw}', expected one of: {choices}") from e


def _parse_context(raw: Optional[str]) -> ScenarioContext:
    data = _parse_json_field(raw, "scenarioContext", {})
    try:
        return ScenarioContext.model_validate(data)
    except ValidationError as e:
        raise InvalidRequestError(f"Invalid scenarioContext: {e}") from e


async def _read_uploads(files: List[UploadFile]) -> List[ScreenshotInput]:
    """Keep uploads in submitted order; it encodes the user journey."""
    screenshots = []
    for i, upload in enumerate(files):
        data = await upload.read()
        screenshots.append(ScreenshotInput(
            name=upload.filename or f"Screenshot {i + 1}",
            image=data
        ))
    return screenshots


# API Endpoints
@app.post("/api/estimate")
async def estimate(context: ScenarioContext):
    """Estimated test case count for a scenario configuration."""
    return {"estimated_test_cases": estimate_test_cases(context)}


@app.post("/api/extract-elements")
async def extract_elements(
    files: Optional[List[UploadFile]] = File(None),
    pageNames: Optional[str] = Form(None),
    orchestrator: OrchestratorAgent = Depends(get_orchestrator)
):
    """
    OCR and classify screenshots without generating test cases.
    Returns a session handle for a later corrected regeneration.
    """
    page_names = _parse_page_names(pageNames)
    screenshots = await _read_uploads(files or [])
    review = await orchestrator.extract_elements(screenshots, page_names)
    return {
        "session_id": review["session_id"],
        "pages": [page.model_dump() for page in review["pages"]]
    }


@app.post("/api/generate-testcases")
async def generate_testcases(
    files: Optional[List[UploadFile]] = File(None),
    pageNames: Optional[str] = Form(None),
    scenarioContext: Optional[str] = Form(None),
    aiModel: Optional[str] = Form(None),
    regenerate: bool = Form(False),
    orchestrator: OrchestratorAgent = Depends(get_orchestrator)
):
    """
    Generate test cases from uploaded screenshots.
    """
    page_names = _parse_page_names(pageNames)
    context = _parse_context(scenarioContext)
    model = _parse_model(aiModel)

    screenshots = await _read_uploads(files or [])
    request = await orchestrator.build_request(
        screenshots,
        page_names=page_names,
        scenario_context=context,
        model=model,
        force_regenerate=regenerate
    )
    response = await orchestrator.generate(request)
    return response.model_dump(by_alias=True)


@app.post("/api/regenerate-testcases")
async def regenerate_testcases(
    body: RegenerateRequest,
    orchestrator: OrchestratorAgent = Depends(get_orchestrator)
):
    """
    Regenerate from a session without re-uploading screenshots.
    """
    response = await orchestrator.regenerate(
        session_id=body.session_id,
        scenario_context=body.scenario_context,
        corrections=body.corrections,
        model=body.model
    )
    return response.model_dump(by_alias=True)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "timestamp": timestamp_now()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
