# core/services/onboarding.py
"""
Client side of onboarding: submit the finished form once, remember the result
locally and move the farmer on to the dashboard.

Storage, navigation and alerts are injected so the same flow works against a
browser bridge, a CLI, or plain test doubles.
"""
import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol, Union

import httpx
from pydantic import ValidationError

from ..models.io import ComprehensiveProfileIn

PROFILE_ENDPOINT = "/api/comprehensive-profile"
DASHBOARD_ROUTE = "/dashboard"
SAVE_FAILED_MESSAGE = "Failed to save your profile. Please try again."

USER_DATA_KEY = "userData"
FARM_FIELDS_KEY = "farmFields"


class ClientStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...


class MemoryStorage:
    def __init__(self):
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value


class JsonFileStorage:
    """Key/value strings kept in one JSON object on disk."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            items = self._load()
            items[key] = value
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as f:
                json.dump(items, f, ensure_ascii=False, indent=2)


class OnboardingClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        storage: ClientStorage,
        navigate: Callable[[str], None],
        alert: Callable[[str], None],
        logger: Optional[logging.Logger] = None,
        endpoint: str = PROFILE_ENDPOINT,
    ):
        self.http = http
        self.storage = storage
        self.navigate = navigate
        self.alert = alert
        self.logger = logger or logging.getLogger(__name__)
        self.endpoint = endpoint

    def _fail(self, reason: str) -> bool:
        self.logger.error("Profile submission failed: %s", reason)
        self.alert(SAVE_FAILED_MESSAGE)
        return False

    async def complete(self, submission: Union[ComprehensiveProfileIn, Dict[str, Any]]) -> bool:
        """
        POST the profile once. On success persist `userData` and `farmFields`
        and navigate to the dashboard; on any failure alert and leave storage
        untouched. No retries.
        """
        try:
            if not isinstance(submission, ComprehensiveProfileIn):
                submission = ComprehensiveProfileIn.model_validate(submission)
        except ValidationError as e:
            return self._fail(f"invalid submission ({e.error_count()} error(s))")

        body = submission.model_dump(mode="json", by_alias=True, exclude_none=True)

        try:
            resp = await self.http.post(self.endpoint, json=body)
        except httpx.HTTPError as e:
            return self._fail(f"transport error: {e}")

        if not resp.is_success:
            return self._fail(f"HTTP {resp.status_code}")

        try:
            result = resp.json()
        except ValueError:
            return self._fail("unparsable response body")
        if not isinstance(result, dict):
            return self._fail("unexpected response body")
        profile = result.get("profile") or {}

        user_data = {
            "userId": body["userId"],
            "fullName": body["fullName"],
            "mobile": body["mobile"],
            "pincode": body["pincode"],
            "location": body.get("location"),
            "pincodeLocation": body.get("pincodeLocation"),
            "farmFields": body["farmFields"],
            "profileComplete": True,
            "aiInsights": profile.get("aiInsights"),
            "weatherData": profile.get("weatherData"),
        }
        self.storage.set_item(USER_DATA_KEY, json.dumps(user_data))
        self.storage.set_item(FARM_FIELDS_KEY, json.dumps(body["farmFields"]))

        self.logger.info("Profile saved for %s, redirecting to %s", body["userId"], DASHBOARD_ROUTE)
        self.navigate(DASHBOARD_ROUTE)
        return True
