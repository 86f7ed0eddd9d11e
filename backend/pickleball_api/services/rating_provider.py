"""DUPR partner API client.

Thin wrapper around the rating provider's REST API: client-credential token
exchange, club membership lookup, match create/update/delete, batch submit
and club match search.

Reads configuration from environment variables:
  - DUPR_ENV (uat | prod, default uat)
  - DUPR_CLIENT_KEY / DUPR_CLIENT_SECRET
  - DUPR_CLUB_ID
  - DUPR_*_URL per-endpoint overrides

Network failures and non-2xx responses raise UpstreamError carrying the
provider's status and body, except for ``submit_batch`` which returns the
response so the caller can log the attempt before deciding.
"""

import base64
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import requests

from pickleball_api.errors import InternalError, UpstreamError

logger = logging.getLogger(__name__)

BASE_URLS = {
    "uat": "https://uat.mydupr.com",
    "prod": "https://prod.mydupr.com",
}

DEFAULT_PATHS = {
    "DUPR_TOKEN_URL": "/api/auth/v1.0/token",
    "DUPR_MATCH_CREATE_URL": "/api/match/v1.0/create",
    "DUPR_MATCH_UPDATE_URL": "/api/match/v1.0/update",
    "DUPR_MATCH_DELETE_URL": "/api/match/v1.0/delete",
    "DUPR_MATCH_BATCH_URL": "/api/match/v1.0/batch",
    "DUPR_CLUB_MATCH_SEARCH_URL": "/api/club/v1.0/match/search",
    "DUPR_USER_CLUBS_URL": "/api/user/v1.0/{duprId}/clubs",
}

SEARCH_TIMEOUT_SECONDS = 10
DEFAULT_TOKEN_TTL_SECONDS = 3600
TOKEN_EXPIRY_MARGIN_SECONDS = 60
SUBMITTER_ROLES = ("DIRECTOR", "ORGANIZER")

# Best-effort: (env, token_url, client_key) -> (access_token, expires_at)
_token_cache: Dict[Tuple[str, str, str], Tuple[str, float]] = {}


def clear_token_cache() -> None:
    _token_cache.clear()


def as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def configured_club_id() -> int:
    """Numeric DUPR_CLUB_ID or InternalError."""
    club_id = as_int((os.getenv("DUPR_CLUB_ID") or "").strip() or None)
    if club_id is None:
        raise InternalError("DUPR_CLUB_ID must be configured as a numeric value")
    return club_id


@dataclass
class ProviderResponse:
    status: int
    body: Any  # Parsed JSON, raw text, or None for an empty body
    endpoint: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@dataclass(frozen=True)
class RemoteMatchRef:
    """How a remote match can be recognised locally."""

    identifier: Optional[str]
    match_id: Optional[int]
    match_code: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {"identifier": self.identifier, "matchId": self.match_id, "matchCode": self.match_code}


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_remote_match(remote: Any) -> Optional[RemoteMatchRef]:
    if not isinstance(remote, dict):
        return None
    return RemoteMatchRef(
        identifier=_clean(remote.get("identifier") or remote.get("matchIdentifier")),
        match_id=as_int(remote.get("matchId", remote.get("id"))),
        match_code=_clean(remote.get("matchCode") or remote.get("code")),
    )


def extract_remote_matches(payload: Any) -> List[Dict[str, Any]]:
    """Find the list of matches inside a search response, whatever envelope it uses."""
    if not isinstance(payload, dict):
        return []
    for key in ("result", "matches", "data", "items"):
        candidate = payload.get(key)
        if isinstance(candidate, list):
            return candidate
        if isinstance(candidate, dict):
            for inner in ("matches", "items", "result"):
                if isinstance(candidate.get(inner), list):
                    return candidate[inner]
    return []


def parse_match_meta(payload: Any, fallback_identifier: Optional[str] = None, index: int = 0) -> RemoteMatchRef:
    """
    Pull the provider-assigned id/code for the ``index``-th submitted match
    out of a create or batch response. List entries are matched on their
    echoed ``identifier``; only when no entry echoes one are entries paired
    with submissions by position.
    """
    result = None
    if isinstance(payload, dict):
        for key in ("result", "data", "matches"):
            if payload.get(key) is not None:
                result = payload[key]
                break

    if isinstance(result, list):
        candidates = result
    elif isinstance(payload, dict) and isinstance(payload.get("matches"), list):
        candidates = payload["matches"]
    else:
        candidates = None

    if candidates is not None:
        echoed = [c for c in candidates if isinstance(c, dict) and _clean(c.get("identifier"))]
        wanted = _clean(fallback_identifier)
        if echoed:
            entry = next((c for c in echoed if _clean(c.get("identifier")) == wanted), None)
        elif index < len(candidates):
            entry = candidates[index]
        else:
            entry = candidates[0] if candidates else None
    elif isinstance(result, dict):
        entry = result
    elif isinstance(payload, dict):
        entry = payload
    else:
        entry = None

    if not isinstance(entry, dict):
        return RemoteMatchRef(identifier=_clean(fallback_identifier), match_id=None, match_code=None)
    return RemoteMatchRef(
        identifier=_clean(entry.get("identifier")) or _clean(fallback_identifier),
        match_id=as_int(entry.get("matchId", entry.get("id"))),
        match_code=_clean(entry.get("matchCode") or entry.get("code")),
    )


def _parse_body(response: requests.Response) -> Any:
    text = response.text
    if not text:
        return None
    try:
        return response.json()
    except ValueError:
        return text


class RatingProviderClient:
    """
    Client for the DUPR partner API.

    Credentials are read at construction; a missing key/secret only fails
    when a token is actually needed.
    """

    def __init__(self):
        requested = (os.getenv("DUPR_ENV") or "uat").strip().lower()
        self.env = "prod" if requested == "prod" else "uat"
        self.client_key = (os.getenv("DUPR_CLIENT_KEY") or "").strip()
        self.client_secret = (os.getenv("DUPR_CLIENT_SECRET") or "").strip()

    def url(self, name: str, **params: str) -> str:
        explicit = (os.getenv(name) or "").strip()
        template = explicit or BASE_URLS[self.env] + DEFAULT_PATHS[name]
        for key, value in params.items():
            template = template.replace("{" + key + "}", quote(str(value), safe=""))
        return template

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _send(
        self,
        method: str,
        url: str,
        unreachable_message: str,
        headers: Optional[Dict[str, str]] = None,
        payload: Any = None,
        timeout: Optional[float] = None,
    ) -> ProviderResponse:
        try:
            response = requests.request(method, url, headers=headers, json=payload, timeout=timeout)
        except requests.Timeout as exc:
            logger.warning(f"DUPR {method} {url} timed out after {timeout}s")
            raise UpstreamError(unreachable_message, details={"reason": "timeout"}) from exc
        except requests.RequestException as exc:
            logger.warning(f"DUPR {method} {url} failed: {exc}")
            raise UpstreamError(unreachable_message) from exc

        result = ProviderResponse(status=response.status_code, body=_parse_body(response), endpoint=url)
        logger.info(f"DUPR {method} {url} -> {result.status}")
        return result

    def _authorized(
        self,
        method: str,
        url: str,
        unreachable_message: str,
        payload: Any = None,
        timeout: Optional[float] = None,
    ) -> ProviderResponse:
        headers = {
            "Authorization": f"Bearer {self.access_token()}",
            "Content-Type": "application/json",
        }
        return self._send(method, url, unreachable_message, headers=headers, payload=payload, timeout=timeout)

    @staticmethod
    def _require_ok(response: ProviderResponse, failure_message: str) -> ProviderResponse:
        if not response.ok:
            raise UpstreamError(failure_message, status=response.status, details=response.body)
        return response

    # ------------------------------------------------------------------
    # Token
    # ------------------------------------------------------------------

    def access_token(self) -> str:
        if not self.client_key or not self.client_secret:
            raise UpstreamError("DUPR client key/secret not configured")

        token_url = self.url("DUPR_TOKEN_URL")
        cache_key = (self.env, token_url, self.client_key)
        cached = _token_cache.get(cache_key)
        if cached and cached[1] > time.time():
            return cached[0]

        encoded = base64.b64encode(f"{self.client_key}:{self.client_secret}".encode()).decode()
        response = self._send(
            "POST",
            token_url,
            "Unable to reach DUPR token endpoint",
            headers={"x-authorization": encoded},
        )
        self._require_ok(response, "DUPR token request failed")

        body = response.body if isinstance(response.body, dict) else {}
        token = body.get("accessToken") or body.get("access_token") or body.get("token") or body.get("jwt")
        if isinstance(body.get("result"), dict) and not token:
            inner = body["result"]
            token = inner.get("accessToken") or inner.get("token")
        if not token:
            raise UpstreamError("DUPR token response missing access token", details=response.body)

        expires_in = as_int(body.get("expiresIn") or body.get("expires_in") or body.get("expires"))
        ttl = expires_in if expires_in and expires_in > 0 else DEFAULT_TOKEN_TTL_SECONDS
        _token_cache[cache_key] = (token, time.time() + max(0, ttl - TOKEN_EXPIRY_MARGIN_SECONDS))
        return token

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def get_user_clubs(self, dupr_id: str) -> List[Dict[str, Any]]:
        """Club memberships (``[{"clubId": ..., "role": ...}, ...]``) of a DUPR account."""
        response = self._authorized(
            "GET",
            self.url("DUPR_USER_CLUBS_URL", duprId=dupr_id),
            "Unable to reach DUPR club membership endpoint",
        )
        self._require_ok(response, "DUPR club membership lookup failed")
        body = response.body if isinstance(response.body, dict) else {}
        membership = body.get("membership")
        if membership is None and isinstance(body.get("result"), dict):
            membership = body["result"].get("membership")
        return membership if isinstance(membership, list) else []

    def create_match(self, payload: Dict[str, Any]) -> ProviderResponse:
        response = self._authorized(
            "POST", self.url("DUPR_MATCH_CREATE_URL"), "Unable to reach DUPR create endpoint", payload=payload
        )
        return self._require_ok(response, "DUPR create match failed")

    def update_match(self, payload: Dict[str, Any]) -> ProviderResponse:
        response = self._authorized(
            "POST", self.url("DUPR_MATCH_UPDATE_URL"), "Unable to reach DUPR update endpoint", payload=payload
        )
        return self._require_ok(response, "DUPR update match failed")

    def delete_match(self, match_code: str, identifier: str) -> ProviderResponse:
        response = self._authorized(
            "DELETE",
            self.url("DUPR_MATCH_DELETE_URL"),
            "Unable to reach DUPR delete endpoint",
            payload={"matchCode": match_code, "identifier": identifier},
        )
        return self._require_ok(response, "DUPR delete match failed")

    def submit_batch(self, payloads: List[Dict[str, Any]]) -> ProviderResponse:
        """POST every match in one call. Non-2xx is returned, not raised."""
        return self._authorized(
            "POST",
            self.url("DUPR_MATCH_BATCH_URL"),
            "Unable to reach DUPR match submission endpoint",
            payload=payloads,
        )

    def search_club_matches(
        self,
        club_id: int,
        start_epoch: int,
        end_epoch: int,
        offset: int = 0,
        limit: int = 50,
        timeout: float = SEARCH_TIMEOUT_SECONDS,
    ) -> Tuple[Dict[str, Any], ProviderResponse]:
        """Returns the request sent and the provider's response (2xx only)."""
        request_body = {
            "offset": offset,
            "limit": limit,
            "eventFormat": ["DOUBLES", "SINGLES"],
            "startDate": start_epoch,
            "endDate": end_epoch,
            "clubId": club_id,
        }
        response = self._authorized(
            "POST",
            self.url("DUPR_CLUB_MATCH_SEARCH_URL"),
            "Unable to reach DUPR club match search endpoint",
            payload=request_body,
            timeout=timeout,
        )
        self._require_ok(response, "DUPR club match search failed")
        return request_body, response


def get_rating_provider() -> RatingProviderClient:
    """FastAPI dependency; overridden in tests."""
    return RatingProviderClient()
