"""Tests for the prediction orchestrator state machine."""

import asyncio
import logging

import pytest

from potability.models import PredictionResponse, RiskLevel, WaterQualityInput
from potability.orchestrator import (
    BUSY_MESSAGE,
    UNEXPECTED_MESSAGE,
    VALIDATION_FAILED_MESSAGE,
    PredictionOrchestrator,
    PredictionState,
)
from potability.parameters import SAMPLE_GOOD_WATER, SAMPLE_POOR_WATER
from potability.storage import KeyValueStore, LastInputCache

from conftest import FakePredictionClient


@pytest.fixture
def cache(tmp_path):
    return LastInputCache(KeyValueStore(tmp_path / "store.json"))


def _text_form(values):
    return {name: str(value) for name, value in values.items()}


@pytest.mark.asyncio
async def test_compliant_input_gets_local_verdict(fake_client, cache):
    orchestrator = PredictionOrchestrator(fake_client, cache)

    response = await orchestrator.predict(_text_form(SAMPLE_GOOD_WATER))

    assert response.success
    assert response.prediction.is_potable
    assert response.prediction.risk_level == RiskLevel.LOW
    assert fake_client.calls == []
    assert orchestrator.state == PredictionState.COMPLETE
    assert orchestrator.current_response is response


@pytest.mark.asyncio
async def test_noncompliant_input_goes_remote(fake_client, cache, remote_success):
    orchestrator = PredictionOrchestrator(fake_client, cache)

    response = await orchestrator.predict(_text_form(SAMPLE_POOR_WATER))

    assert fake_client.calls == [WaterQualityInput(**SAMPLE_POOR_WATER)]
    assert response == remote_success
    assert orchestrator.state == PredictionState.COMPLETE
    assert len(orchestrator.warnings) == 9


@pytest.mark.asyncio
async def test_validation_failure_never_reaches_remote(fake_client, cache):
    orchestrator = PredictionOrchestrator(fake_client, cache)

    response = await orchestrator.predict({**_text_form(SAMPLE_POOR_WATER), "ph": "15"})

    assert not response.success
    assert response.error == VALIDATION_FAILED_MESSAGE
    assert response.details == ["pH Level: Value is out of range: 0-14 pH scale"]
    assert orchestrator.state == PredictionState.ERROR
    assert fake_client.calls == []
    assert cache.load() is None


@pytest.mark.asyncio
async def test_missing_fields_fail_validation(fake_client):
    orchestrator = PredictionOrchestrator(fake_client)

    response = await orchestrator.predict({"ph": "7"})

    assert not response.success
    assert len(response.details) == 8
    assert not orchestrator.field_results["hardness"].is_valid


@pytest.mark.asyncio
async def test_validated_input_is_persisted(fake_client, cache):
    orchestrator = PredictionOrchestrator(fake_client, cache)

    await orchestrator.predict(SAMPLE_POOR_WATER)

    assert cache.load() == WaterQualityInput(**SAMPLE_POOR_WATER)
    assert orchestrator.last_input == WaterQualityInput(**SAMPLE_POOR_WATER)


@pytest.mark.asyncio
async def test_remote_failure_ends_in_error_state(cache):
    failure = PredictionResponse.failure("Unable to connect")
    orchestrator = PredictionOrchestrator(FakePredictionClient(response=failure), cache)

    response = await orchestrator.predict(SAMPLE_POOR_WATER)

    assert response is failure
    assert orchestrator.state == PredictionState.ERROR
    # input still persisted, validation succeeded
    assert cache.load() is not None


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_failure(cache):
    client = FakePredictionClient(error=RuntimeError("boom"))
    orchestrator = PredictionOrchestrator(client, cache)

    response = await orchestrator.predict(SAMPLE_POOR_WATER)

    assert not response.success
    assert response.error == UNEXPECTED_MESSAGE
    assert orchestrator.state == PredictionState.ERROR
    assert not orchestrator.is_loading


@pytest.mark.asyncio
async def test_cache_write_failure_does_not_block_prediction(fake_client):
    class BrokenCache:
        def save(self, data):
            raise OSError("read-only filesystem")

        def load(self):
            return None

    orchestrator = PredictionOrchestrator(fake_client, BrokenCache())

    response = await orchestrator.predict(SAMPLE_GOOD_WATER)

    assert response.success


@pytest.mark.asyncio
async def test_second_prediction_while_busy_is_rejected(cache, remote_success):
    release = asyncio.Event()

    class SlowClient(FakePredictionClient):
        async def send_prediction(self, data, max_attempts=None):
            self.calls.append(data)
            await release.wait()
            return self.response

    client = SlowClient()
    orchestrator = PredictionOrchestrator(client, cache)

    first = asyncio.create_task(orchestrator.predict(SAMPLE_POOR_WATER))
    while not client.calls:
        await asyncio.sleep(0)
    assert orchestrator.is_loading
    assert orchestrator.state == PredictionState.REMOTE_CALL

    rejected = await orchestrator.predict(SAMPLE_GOOD_WATER)
    assert not rejected.success
    assert rejected.error == BUSY_MESSAGE
    assert orchestrator.current_response is None

    release.set()
    response = await first

    assert response == remote_success
    assert orchestrator.current_response is response
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_each_attempt_replaces_response(fake_client):
    orchestrator = PredictionOrchestrator(fake_client)

    first = await orchestrator.predict(SAMPLE_GOOD_WATER)
    second = await orchestrator.predict({"ph": ""})

    assert first.success
    assert orchestrator.current_response is second
    orchestrator.reset()
    assert orchestrator.state == PredictionState.IDLE
    assert orchestrator.current_response is None


def test_load_last_input_prefills_form(fake_client, cache):
    cache.save(WaterQualityInput(**SAMPLE_GOOD_WATER))
    orchestrator = PredictionOrchestrator(fake_client, cache)

    assert orchestrator.load_last_input() == WaterQualityInput(**SAMPLE_GOOD_WATER)
    assert orchestrator.form_values()["ph"] == "7.0"


def test_form_values_empty_without_history(fake_client, cache):
    orchestrator = PredictionOrchestrator(fake_client, cache)
    assert orchestrator.load_last_input() is None
    assert orchestrator.form_values() == {}


@pytest.mark.asyncio
async def test_check_connectivity(cache):
    orchestrator = PredictionOrchestrator(FakePredictionClient(reachable=False), cache)
    assert await orchestrator.check_connectivity() is False
    assert orchestrator.api_connected is False


@pytest.mark.asyncio
async def test_corrupt_store_does_not_block_prediction(fake_client, tmp_path):
    path = tmp_path / "store.json"
    path.write_text("garbage", encoding="utf-8")
    cache = LastInputCache(KeyValueStore(path))
    orchestrator = PredictionOrchestrator(fake_client, cache)

    assert orchestrator.load_last_input() is None
    response = await orchestrator.predict(SAMPLE_GOOD_WATER)

    assert response.success
    assert orchestrator.state == PredictionState.COMPLETE
    assert cache.load() == WaterQualityInput(**SAMPLE_GOOD_WATER)


@pytest.mark.asyncio
async def test_prefilled_small_values_validate_again(fake_client, cache):
    form = {**_text_form(SAMPLE_GOOD_WATER), "turbidity": "0.00001"}
    assert (await PredictionOrchestrator(fake_client, cache).predict(form)).success

    restored = PredictionOrchestrator(fake_client, cache)
    restored.load_last_input()
    values = restored.form_values()

    assert values["turbidity"] == "0.00001"
    response = await restored.predict(values)
    assert response.success
    assert restored.last_input.turbidity == 0.00001


@pytest.mark.asyncio
async def test_validation_failure_logs_invalid_fields(fake_client, caplog):
    caplog.set_level(logging.INFO, logger="potability.orchestrator")
    orchestrator = PredictionOrchestrator(fake_client)

    await orchestrator.predict({**_text_form(SAMPLE_GOOD_WATER), "ph": "15"})

    [record] = [r for r in caplog.records if r.getMessage() == "Form validation failed"]
    assert record.potability_attributes == {"potability.invalid_fields": ["ph"]}
