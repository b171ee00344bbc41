"""Shared fakes for the pipeline tests."""

import asyncio
import json

import pytest

from testgen.agents.orchestrator_agent import OrchestratorAgent
from testgen.backends.base import ModelBackend
from testgen.exceptions import OcrFailure
from testgen.models.request import ModelChoice, ScreenshotInput
from testgen.ocr.engine import OcrEngine
from testgen.store import GenerationCache, SessionStore


VALID_PAYLOAD = {
    "testCases": [
        {
            "type": "Functional",
            "title": "Verify login with valid credentials",
            "preconditions": "User account exists",
            "testSteps": "Open the Login Page, Enter email and password, Click Submit",
            "testData": {"Email": "user1@test.com", "Password": "SecurePass123"},
            "expectedResults": "Dashboard is displayed; Welcome message shows the user name",
        },
        {
            "type": "end to end",
            "title": "Complete checkout from Login Page to Order Confirmation",
            "preconditions": "• Cart contains one item",
            "testSteps": "1. Open the Login Page\n2. Sign in\n3. Pay for the order",
            "testData": "- Card: 4111 1111 1111 1111",
            "expectedResults": "• Order Confirmation is displayed",
        },
    ]
}

VALID_REPLY = (
    "Here are the generated test cases:\n```json\n"
    + json.dumps(VALID_PAYLOAD, indent=2)
    + "\n```\nLet me know if you need more."
)


class FakeBackend(ModelBackend):
    """Returns a canned reply; raises queued errors on the first calls."""

    name = "fake"

    def __init__(self, reply=VALID_REPLY, errors=None, gate=None):
        super().__init__()
        self.reply = reply
        self.errors = list(errors or [])
        self.gate = gate
        self.calls = []

    async def dispatch(self, prompt, images, temperature=0.05):
        self.calls.append({"prompt": prompt, "images": images, "temperature": temperature})
        if self.gate is not None:
            await self.gate.wait()
        if self.errors:
            raise self.errors.pop(0)
        return self.reply


class FakeOcrEngine(OcrEngine):
    """Looks up OCR text by image bytes; b"broken" fails."""

    def __init__(self, texts=None):
        self.texts = texts or {}
        self.seen = []

    def recognize(self, image):
        self.seen.append(image)
        if image == b"broken":
            raise OcrFailure("unreadable image")
        return self.texts.get(image, "")


class RecordingSleep:
    """Records backoff delays instead of sleeping."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)
        await asyncio.sleep(0)


LOGIN_TEXT = "Login\nEmail Address*\nPassword:\nSubmit\nuser1@test.com\nuser2@test.com\n2024-01-01"
CART_TEXT = "Shopping Cart\nCheckout\nTotal\n$25.00"


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def ocr_engine():
    return FakeOcrEngine({b"login-png": LOGIN_TEXT, b"cart-png": CART_TEXT})


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def orchestrator(backend, ocr_engine, recording_sleep):
    return OrchestratorAgent(
        backends={ModelChoice.CLAUDE: backend, ModelChoice.OLLAMA: FakeBackend()},
        ocr_engine=ocr_engine,
        cache=GenerationCache(max_entries=16, ttl_seconds=0),
        sessions=SessionStore(max_entries=16, ttl_seconds=0),
        sleep=recording_sleep
    )


@pytest.fixture
def screenshots():
    return [
        ScreenshotInput(name="login.png", image=b"login-png"),
        ScreenshotInput(name="cart.png", image=b"cart-png"),
    ]
