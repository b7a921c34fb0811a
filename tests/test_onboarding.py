"""
Tests for the onboarding client: single submission, client storage writes,
navigation and the failure alert.
"""

import json

import httpx
import pytest

from core.services.onboarding import (
    DASHBOARD_ROUTE, SAVE_FAILED_MESSAGE, JsonFileStorage, MemoryStorage, OnboardingClient,
)

from conftest import profile_payload


class Recorder:
    def __init__(self):
        self.navigations = []
        self.alerts = []

    def navigate(self, route):
        self.navigations.append(route)

    def alert(self, message):
        self.alerts.append(message)


def make_client(handler, storage=None):
    calls = []

    def _handler(request):
        calls.append(request)
        return handler(request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(_handler), base_url="http://kisanmitr.test")
    rec = Recorder()
    onboarding = OnboardingClient(http, storage if storage is not None else MemoryStorage(), rec.navigate, rec.alert)
    return onboarding, rec, calls


def ok_response(request):
    return httpx.Response(200, json={
        "success": True,
        "profile": {"aiInsights": {"text": "Sow by June"}, "weatherData": {"temp": 30}},
        "recommendations": "Sow by June",
    })


class TestOnboardingClient:

    async def test_success_persists_and_navigates_once(self):
        onboarding, rec, calls = make_client(ok_response)

        assert await onboarding.complete(profile_payload()) is True

        assert len(calls) == 1
        assert calls[0].url.path == "/api/comprehensive-profile"
        sent = json.loads(calls[0].content)
        assert sent["userId"] == "farmer-42"
        assert sent["sowingDate"] == "2025-06-15"

        user_data = json.loads(onboarding.storage.get_item("userData"))
        assert user_data["profileComplete"] is True
        assert user_data["aiInsights"] == {"text": "Sow by June"}
        assert user_data["weatherData"] == {"temp": 30}
        assert user_data["fullName"] == "Ramesh Kumar"
        fields = json.loads(onboarding.storage.get_item("farmFields"))
        assert fields[0]["id"] == "field-1"

        assert rec.navigations == [DASHBOARD_ROUTE]
        assert rec.alerts == []

    @pytest.mark.parametrize("response", [
        httpx.Response(500, json={"error": "Failed to create profile"}),
        httpx.Response(409, json={"error": "Profile already exists for this user"}),
        httpx.Response(200, text="<html>not json</html>"),
    ])
    async def test_failure_alerts_and_writes_nothing(self, response):
        onboarding, rec, calls = make_client(lambda r: response)

        assert await onboarding.complete(profile_payload()) is False

        assert len(calls) == 1
        assert onboarding.storage.get_item("userData") is None
        assert onboarding.storage.get_item("farmFields") is None
        assert rec.navigations == []
        assert rec.alerts == [SAVE_FAILED_MESSAGE]

    async def test_transport_error(self):
        def boom(request):
            raise httpx.ConnectError("connection refused", request=request)

        onboarding, rec, calls = make_client(boom)

        assert await onboarding.complete(profile_payload()) is False
        assert rec.alerts == [SAVE_FAILED_MESSAGE]
        assert onboarding.storage.get_item("userData") is None
        assert onboarding.storage.get_item("farmFields") is None

    async def test_invalid_submission_is_not_sent(self):
        onboarding, rec, calls = make_client(ok_response)

        assert await onboarding.complete(profile_payload(pincode="12")) is False
        assert calls == []
        assert rec.alerts == [SAVE_FAILED_MESSAGE]


class TestJsonFileStorage:

    def test_round_trip_through_disk(self, tmp_path):
        path = tmp_path / "storage" / "client.json"
        storage = JsonFileStorage(path)

        assert storage.get_item("userData") is None
        storage.set_item("userData", '{"userId": "farmer-42"}')
        storage.set_item("farmFields", "[]")

        reopened = JsonFileStorage(path)
        assert reopened.get_item("userData") == '{"userId": "farmer-42"}'
        assert reopened.get_item("farmFields") == "[]"

    async def test_onboarding_writes_to_file(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "client.json")
        onboarding, rec, _ = make_client(ok_response, storage=storage)

        await onboarding.complete(profile_payload())

        on_disk = json.loads((tmp_path / "client.json").read_text(encoding="utf-8"))
        assert set(on_disk) == {"userData", "farmFields"}
