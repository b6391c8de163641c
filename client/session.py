"""
client/session.py -- Authenticated HTTP session for the OceanOS API.

SessionManager attaches the stored access token to every request and hides
access-token expiry from its callers:

  1. A request comes back 401.
  2. The manager refreshes the access token with the stored refresh token.
     Concurrent 401s for the same stale token share one refresh (SingleFlight
     keyed on the token that failed); a thread whose token was already
     replaced by someone else just retries with the new one.
  3. The original request is retried exactly once with the new token.
  4. If the refresh fails, both tokens are cleared and every waiting caller
     gets the original 401 as an ApiError. A 401 on the retried request is
     final.

Credential endpoints (login, register, refresh, logout) never trigger a
refresh: a 401 there means the credentials themselves were rejected.

Every request also carries X-Client and an X-Provenance JSON header
({app, sentAt, environment}) for server-side request attribution.

Usage:
    manager = SessionManager("http://localhost:8000/api/v1")
    manager.login("researcher@university.edu", "researcher-demo")
    manager.create_submission("Reef survey", "Transect 4", "observation", {"count": 12})
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from client.errors import GENERIC_ERROR_MESSAGE, ApiError
from client.singleflight import SingleFlight
from client.storage import MemoryTokenStorage, TokenStorage

logger = logging.getLogger("oceanos.client")

CLIENT_NAME = "oceanos"

_NO_REFRESH_PATHS = frozenset({"/auth/login", "/auth/register", "/auth/refresh", "/auth/logout"})

# Python-side keyword -> wire field for update_submission().
_WIRE_FIELDS = {
    "title": "title",
    "description": "description",
    "data_type": "dataType",
    "data": "data",
    "attachments": "attachments",
}


def _default_session() -> requests.Session:
    s = requests.Session()
    # Only idempotent reads are retried on gateway errors; a POST is never replayed.
    retries = Retry(
        total=3,
        backoff_factor=0.5,
        status_forcelist=(502, 503, 504),
        allowed_methods=("GET",),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retries)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    s.max_redirects = 3
    return s


def _unwrap(response: requests.Response) -> Any:
    if not response.ok:
        raise ApiError.from_response(response)
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        raise ApiError(response.status_code, "invalid_response", GENERIC_ERROR_MESSAGE) from None


class SessionManager:
    def __init__(
        self,
        base_url: str,
        storage: Optional[TokenStorage] = None,
        environment: str = "development",
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.storage = storage if storage is not None else MemoryTokenStorage()
        self.environment = environment
        self.session = session if session is not None else _default_session()
        self.timeout = timeout
        self._refresh_flight = SingleFlight()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _headers(self, access_token: Optional[str]) -> dict[str, str]:
        provenance = {
            "app": CLIENT_NAME,
            "sentAt": datetime.now(timezone.utc).isoformat(),
            "environment": self.environment,
        }
        headers = {"X-Client": CLIENT_NAME, "X-Provenance": json.dumps(provenance)}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    def _send(
        self,
        method: str,
        path: str,
        body: Any,
        params: Optional[dict[str, Any]],
        access_token: Optional[str],
    ) -> requests.Response:
        try:
            return self.session.request(
                method,
                self.base_url + path,
                json=body,
                params=params,
                headers=self._headers(access_token),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiError.network() from exc

    def _refresh(self, failed_token: Optional[str]) -> bool:
        """Replace the access token that just failed. Returns True when a usable token is stored."""
        current = self.storage.get_access()
        if current != failed_token:
            # Replaced (or cleared) by another caller since our request went out.
            return current is not None

        refresh_token = self.storage.get_refresh()
        if not refresh_token:
            self.storage.clear()
            return False
        try:
            response = self.session.post(
                self.base_url + "/auth/refresh",
                json={"refreshToken": refresh_token},
                headers=self._headers(None),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Token refresh failed, signing out: %s", exc)
            self.storage.clear()
            return False
        if not response.ok:
            logger.info("Refresh token rejected (%d), signing out", response.status_code)
            self.storage.clear()
            return False
        try:
            access_token = response.json()["accessToken"]
        except (ValueError, KeyError, TypeError):
            logger.warning("Malformed refresh response, signing out")
            self.storage.clear()
            return False
        self.storage.set_access(access_token)
        logger.info("Access token refreshed")
        return True

    def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Send an authenticated request and return the decoded JSON body.

        Raises ApiError for any non-2xx outcome that survives the single
        refresh-and-retry.
        """
        access_token = self.storage.get_access()
        response = self._send(method, path, json, params, access_token)
        if response.status_code == 401 and path not in _NO_REFRESH_PATHS:
            refreshed = self._refresh_flight.do(access_token, lambda: self._refresh(access_token))
            if not refreshed:
                raise ApiError.from_response(response)
            response = self._send(method, path, json, params, self.storage.get_access())
        return _unwrap(response)

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> dict[str, Any]:
        data = self.request("POST", "/auth/login", json={"email": email, "password": password})
        self.storage.set_tokens(data["accessToken"], data["refreshToken"])
        return data["user"]

    def register(
        self,
        email: str,
        password: str,
        name: str,
        role: str,
        organization: Optional[str] = None,
    ) -> dict[str, Any]:
        body = {"email": email, "password": password, "name": name, "role": role}
        if organization:
            body["organization"] = organization
        data = self.request("POST", "/auth/register", json=body)
        self.storage.set_tokens(data["accessToken"], data["refreshToken"])
        return data["user"]

    def logout(self) -> None:
        """Revoke the refresh token server-side and always forget both tokens locally."""
        refresh_token = self.storage.get_refresh()
        try:
            if refresh_token:
                self.request("POST", "/auth/logout", json={"refreshToken": refresh_token})
        except ApiError as exc:
            logger.warning("Server-side logout failed (%s); clearing local tokens anyway", exc.code)
        finally:
            self.storage.clear()

    def me(self) -> dict[str, Any]:
        return self.request("GET", "/auth/me")["user"]

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    def list_submissions(self) -> list[dict[str, Any]]:
        return self.request("GET", "/submissions")["submissions"]

    def list_pending(self) -> list[dict[str, Any]]:
        return self.request("GET", "/submissions/pending")["submissions"]

    def get_submission(self, submission_id: str) -> dict[str, Any]:
        return self.request("GET", f"/submissions/{quote(submission_id, safe='')}")["submission"]

    def create_submission(
        self,
        title: str,
        description: str,
        data_type: str,
        data: Optional[dict[str, Any]] = None,
        attachments: Optional[list[str]] = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "title": title,
            "description": description,
            "dataType": data_type,
            "data": data if data is not None else {},
        }
        if attachments is not None:
            body["attachments"] = attachments
        return self.request("POST", "/submissions", json=body)["submission"]

    def update_submission(self, submission_id: str, **fields: Any) -> dict[str, Any]:
        """Edit a pending submission. Accepts title, description, data_type, data, attachments."""
        unknown = set(fields) - set(_WIRE_FIELDS)
        if unknown:
            raise TypeError(f"update_submission() got unexpected fields: {', '.join(sorted(unknown))}")
        body = {_WIRE_FIELDS[k]: v for k, v in fields.items()}
        return self.request("PUT", f"/submissions/{quote(submission_id, safe='')}", json=body)["submission"]

    def review_submission(self, submission_id: str, action: str, notes: Optional[str] = None) -> dict[str, Any]:
        body: dict[str, Any] = {"action": action}
        if notes is not None:
            body["notes"] = notes
        path = f"/submissions/{quote(submission_id, safe='')}/review"
        return self.request("POST", path, json=body)["submission"]
