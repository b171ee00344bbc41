"""Tests for the end-to-end generation pipeline."""

import asyncio

import pytest

from conftest import FakeBackend, VALID_REPLY
from testgen.agents.orchestrator_agent import OrchestratorAgent
from testgen.exceptions import (
    InvalidRequestError,
    MalformedResponseError,
    SessionNotFoundError,
)
from testgen.models.request import (
    ElementCorrection,
    GenerationRequest,
    ModelChoice,
    ScenarioContext,
    ScreenshotInput,
)
from testgen.models.test_case import GenerationResult
from testgen.store import GenerationCache, SessionStore


async def _request(orchestrator, screenshots, **kwargs):
    return await orchestrator.build_request(
        screenshots, page_names=["Login Page", "Cart Page"], **kwargs
    )


@pytest.mark.asyncio
async def test_generate_returns_records_session_and_configuration(orchestrator, screenshots, backend):
    request = await _request(orchestrator, screenshots)

    response = await orchestrator.generate(request)

    assert len(response.all_test_cases) == 2
    assert response.session_id
    assert response.cached is False
    assert response.configuration["screenshotCount"] == 2
    assert response.configuration["aiModel"] == "claude"
    assert response.configuration["estimatedTestCases"] == 23
    assert len(backend.calls) == 1
    assert backend.calls[0]["temperature"] == 0.05


@pytest.mark.asyncio
async def test_identical_requests_dispatch_once(orchestrator, screenshots, backend):
    request = await _request(orchestrator, screenshots)

    first = await orchestrator.generate(request)
    second = await orchestrator.generate(request)

    assert len(backend.calls) == 1
    result_fields = set(GenerationResult.model_fields)
    assert second.model_dump(include=result_fields) == first.model_dump(include=result_fields)
    assert second.session_id == first.session_id
    assert second.configuration == first.configuration
    # Only the replay flag differs between the two responses
    assert (first.cached, second.cached) == (False, True)


@pytest.mark.asyncio
async def test_force_regenerate_always_dispatches(orchestrator, screenshots, backend):
    request = await _request(orchestrator, screenshots)
    await orchestrator.generate(request)

    forced = request.model_copy(update={"force_regenerate": True})
    response = await orchestrator.generate(forced)

    assert len(backend.calls) == 2
    assert response.cached is False
    assert backend.calls[1]["temperature"] == 0.2


@pytest.mark.asyncio
async def test_concurrent_identical_requests_share_dispatch(ocr_engine, screenshots, recording_sleep):
    gate = asyncio.Event()
    backend = FakeBackend(gate=gate)
    orchestrator = OrchestratorAgent(
        backends={ModelChoice.CLAUDE: backend},
        ocr_engine=ocr_engine,
        cache=GenerationCache(max_entries=4, ttl_seconds=0),
        sessions=SessionStore(max_entries=4, ttl_seconds=0),
        sleep=recording_sleep
    )
    request = await _request(orchestrator, screenshots)

    tasks = [asyncio.ensure_future(orchestrator.generate(request)) for _ in range(3)]
    await asyncio.sleep(0)
    gate.set()
    responses = await asyncio.gather(*tasks)

    assert len(backend.calls) == 1
    assert len({r.session_id for r in responses}) == 1


@pytest.mark.asyncio
async def test_different_context_gets_its_own_cache_entry(orchestrator, screenshots, backend):
    essential = await _request(orchestrator, screenshots, scenario_context=ScenarioContext(coverage_level="essential"))
    exhaustive = await _request(orchestrator, screenshots, scenario_context=ScenarioContext(coverage_level="exhaustive"))

    await orchestrator.generate(essential)
    await orchestrator.generate(exhaustive)

    assert len(backend.calls) == 2


@pytest.mark.asyncio
async def test_narrow_cache_key_ignores_context(orchestrator, screenshots, backend):
    orchestrator.key_includes_context = False
    essential = await _request(orchestrator, screenshots, scenario_context=ScenarioContext(coverage_level="essential"))
    exhaustive = await _request(orchestrator, screenshots, scenario_context=ScenarioContext(coverage_level="exhaustive"))

    await orchestrator.generate(essential)
    await orchestrator.generate(exhaustive)

    assert len(backend.calls) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("count", [0, 26])
async def test_rejects_screenshot_count_before_dispatch(orchestrator, backend, ocr_engine, count):
    shots = [ScreenshotInput(name=f"s{i}.png", image=b"login-png") for i in range(count)]

    with pytest.raises(InvalidRequestError):
        await orchestrator.build_request(shots)

    request = GenerationRequest(
        screenshots=shots,
        ocr_results=["" for _ in shots],
        page_names=[s.name for s in shots]
    )
    with pytest.raises(InvalidRequestError):
        await orchestrator.generate(request)

    assert backend.calls == []
    assert ocr_engine.seen == []


@pytest.mark.asyncio
async def test_rejects_mismatched_lengths(orchestrator, screenshots, backend):
    request = GenerationRequest(
        screenshots=screenshots,
        ocr_results=["only one"],
        page_names=["Login Page", "Cart Page"]
    )

    with pytest.raises(InvalidRequestError):
        await orchestrator.generate(request)

    assert backend.calls == []


@pytest.mark.asyncio
async def test_rejects_empty_test_types(orchestrator, screenshots, backend):
    request = await _request(orchestrator, screenshots, scenario_context=ScenarioContext(test_types=["bogus"]))

    with pytest.raises(InvalidRequestError):
        await orchestrator.generate(request)

    assert backend.calls == []


@pytest.mark.asyncio
async def test_ocr_failure_keeps_slot(orchestrator):
    shots = [
        ScreenshotInput(name="broken.png", image=b"broken"),
        ScreenshotInput(name="login.png", image=b"login-png"),
    ]

    request = await orchestrator.build_request(shots)

    assert request.ocr_results[0] == ""
    assert request.ocr_results[1].startswith("Login")
    assert request.page_names == ["broken.png", "login.png"]


@pytest.mark.asyncio
async def test_prompt_follows_journey_order(orchestrator, screenshots, backend):
    request = await _request(orchestrator, screenshots)

    await orchestrator.generate(request)

    prompt = backend.calls[0]["prompt"]
    assert prompt.index("Login Page") < prompt.index("Cart Page")
    assert [b.page_name for b in backend.calls[0]["images"]] == ["Login Page", "Cart Page"]


@pytest.mark.asyncio
async def test_malformed_reply_is_not_cached(orchestrator, screenshots, backend):
    backend.reply = "Sorry, I cannot help with that."
    request = await _request(orchestrator, screenshots)

    with pytest.raises(MalformedResponseError):
        await orchestrator.generate(request)

    backend.reply = VALID_REPLY
    response = await orchestrator.generate(request)

    assert len(response.all_test_cases) == 2
    assert len(backend.calls) == 2


@pytest.mark.asyncio
async def test_regenerate_from_session(orchestrator, screenshots, backend):
    request = await _request(orchestrator, screenshots)
    original = await orchestrator.generate(request)

    response = await orchestrator.regenerate(original.session_id)

    assert len(backend.calls) == 2
    assert response.session_id == original.session_id
    images = backend.calls[1]["images"]
    assert [b.image for b in images] == [None, None]
    assert images[0].label == "--- Login Page (Screenshot 1) - IMAGE UNAVAILABLE ---"
    assert backend.calls[1]["temperature"] == 0.2


@pytest.mark.asyncio
async def test_regenerate_reuses_stored_context(orchestrator, screenshots, backend):
    context = ScenarioContext(testing_intent="form-validation", user_story="As a buyer I pay")
    request = await _request(orchestrator, screenshots, scenario_context=context)
    original = await orchestrator.generate(request)

    response = await orchestrator.regenerate(original.session_id)

    assert "FORM VALIDATION FOCUS" in backend.calls[1]["prompt"]
    assert "As a buyer I pay" in backend.calls[1]["prompt"]
    assert response.configuration["testingIntent"] == "form-validation"


@pytest.mark.asyncio
async def test_regenerate_with_corrections(orchestrator, screenshots, backend):
    request = await _request(orchestrator, screenshots)
    original = await orchestrator.generate(request)
    corrections = [ElementCorrection(screenshot_index=0, text="Login", type="button", label="Sign In")]

    await orchestrator.regenerate(original.session_id, corrections=corrections)

    prompt = backend.calls[1]["prompt"]
    assert "USER-PROVIDED ELEMENT CORRECTIONS" in prompt
    assert "Sign In" in prompt
    record = orchestrator.sessions.require(original.session_id)
    assert record.corrections == corrections


@pytest.mark.asyncio
async def test_regenerate_unknown_session(orchestrator, backend):
    with pytest.raises(SessionNotFoundError):
        await orchestrator.regenerate("does-not-exist")

    assert backend.calls == []


@pytest.mark.asyncio
async def test_extract_elements_then_regenerate(orchestrator, screenshots, backend):
    review = await orchestrator.extract_elements(screenshots, ["Login Page", "Cart Page"])

    pages = review["pages"]
    assert [p.page_name for p in pages] == ["Login Page", "Cart Page"]
    assert any(e.text == "Submit" for e in pages[0].elements)
    assert backend.calls == []

    response = await orchestrator.regenerate(review["session_id"])

    assert len(response.all_test_cases) == 2
    assert len(backend.calls) == 1


@pytest.mark.asyncio
async def test_selected_model_is_used(orchestrator, screenshots, backend):
    request = await _request(orchestrator, screenshots, model=ModelChoice.OLLAMA)

    response = await orchestrator.generate(request)

    assert backend.calls == []
    assert response.configuration["aiModel"] == "ollama"


@pytest.mark.asyncio
async def test_execute_generates_from_request(orchestrator, screenshots, backend):
    request = await _request(orchestrator, screenshots)

    outcome = await orchestrator.execute({"request": request})

    assert len(outcome["response"].all_test_cases) == 2
    assert len(backend.calls) == 1


@pytest.mark.asyncio
async def test_execute_regenerates_from_session(orchestrator, screenshots, backend):
    request = await _request(orchestrator, screenshots)
    original = await orchestrator.generate(request)

    outcome = await orchestrator.execute({
        "session_id": original.session_id,
        "scenario_context": ScenarioContext(testing_intent="integration")
    })

    assert outcome["response"].session_id == original.session_id
    assert outcome["response"].configuration["testingIntent"] == "integration"
    assert len(backend.calls) == 2
