"""Shared fixtures for the potability test suite."""

import sys
from pathlib import Path

import httpx
import pytest

# Add services/ and the API service dir to sys.path so imports work like they do in Docker
SERVICES_DIR = Path(__file__).resolve().parent.parent
for path in (SERVICES_DIR, SERVICES_DIR / "potability-api"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from potability.client import PredictionClient  # noqa: E402
from potability.config import ClientConfig  # noqa: E402
from potability.models import PredictionResponse, WaterQualityInput  # noqa: E402
from potability.parameters import SAMPLE_GOOD_WATER, SAMPLE_POOR_WATER  # noqa: E402

BASE_URL = "http://potability.test"


def success_document(**overrides):
    doc = {
        "success": True,
        "prediction": {
            "potability_score": 0.42,
            "is_potable": False,
            "confidence": 0.58,
            "risk_level": "HIGH",
            "status": "NOT POTABLE",
        },
        "recommendation": "Treat before drinking.",
        "warnings": ["High TDS level"],
        "model_info": {
            "model_type": "RandomForestClassifier",
            "standardization_used": True,
            "scaler_available": True,
        },
        "timestamp": "2024-05-01T10:00:00",
    }
    doc.update(overrides)
    return doc


class FakePredictionClient:
    """Test double recording calls to send_prediction."""

    def __init__(self, response=None, reachable=True, error=None):
        self.response = response or PredictionResponse.model_validate(success_document())
        self.reachable = reachable
        self.error = error
        self.calls = []
        self.closed = False

    async def send_prediction(self, data, max_attempts=None):
        self.calls.append(data)
        if self.error is not None:
            raise self.error
        return self.response

    async def check_reachable(self):
        return self.reachable

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        self.closed = True


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def good_input():
    return WaterQualityInput(**SAMPLE_GOOD_WATER)


@pytest.fixture
def poor_input():
    return WaterQualityInput(**SAMPLE_POOR_WATER)


@pytest.fixture
def remote_success():
    return PredictionResponse.model_validate(success_document())


@pytest.fixture
def fake_client():
    return FakePredictionClient()


@pytest.fixture
def make_client():
    """Build a PredictionClient over an httpx.MockTransport.

    Returns (client, requests, sleep) where ``requests`` collects every
    request the transport saw and ``sleep`` records retry delays.
    """
    def _make(handler, **config_overrides):
        requests = []

        def _record(request):
            requests.append(request)
            return handler(request)

        config = ClientConfig(base_url=BASE_URL, **config_overrides)
        sleep = RecordingSleep()
        http = httpx.AsyncClient(transport=httpx.MockTransport(_record))
        return PredictionClient(config, http=http, sleep=sleep), requests, sleep

    return _make
