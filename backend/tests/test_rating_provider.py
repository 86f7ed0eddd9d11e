import base64
import json

import pytest
import requests

from pickleball_api.errors import InternalError, UpstreamError
from pickleball_api.services import rating_provider
from pickleball_api.services.rating_provider import (
    RatingProviderClient,
    as_int,
    configured_club_id,
    extract_remote_matches,
    normalize_remote_match,
    parse_match_meta,
)


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self.text = "" if body is None else (body if isinstance(body, str) else json.dumps(body))

    def json(self):
        return json.loads(self.text)


class RecordingTransport:
    """Replaces requests.request; answers by URL suffix."""

    def __init__(self):
        self.calls = []
        self.routes = {"/token": FakeResponse(200, {"result": {"token": "tok-1"}, "expiresIn": 3600})}

    def __call__(self, method, url, headers=None, json=None, timeout=None):
        self.calls.append({"method": method, "url": url, "headers": headers or {}, "json": json, "timeout": timeout})
        for suffix, response in self.routes.items():
            if url.endswith(suffix):
                if isinstance(response, Exception):
                    raise response
                return response
        return FakeResponse(404, {"message": "no route"})

    def urls(self):
        return [c["url"] for c in self.calls]


@pytest.fixture
def transport(monkeypatch):
    rating_provider.clear_token_cache()
    fake = RecordingTransport()
    monkeypatch.setattr(rating_provider.requests, "request", fake)
    monkeypatch.setenv("DUPR_CLIENT_KEY", "key-123")
    monkeypatch.setenv("DUPR_CLIENT_SECRET", "secret-456")
    monkeypatch.delenv("DUPR_ENV", raising=False)
    yield fake
    rating_provider.clear_token_cache()


def test_token_exchange_uses_encoded_credentials_and_caches(transport):
    client = RatingProviderClient()

    assert client.access_token() == "tok-1"
    assert client.access_token() == "tok-1"

    assert len(transport.calls) == 1
    call = transport.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "https://uat.mydupr.com/api/auth/v1.0/token"
    assert base64.b64decode(call["headers"]["x-authorization"]).decode() == "key-123:secret-456"


def test_missing_credentials_fail_without_network(transport, monkeypatch):
    monkeypatch.setenv("DUPR_CLIENT_SECRET", "")

    with pytest.raises(UpstreamError, match="not configured"):
        RatingProviderClient().access_token()
    assert transport.calls == []


def test_token_response_without_token(transport):
    transport.routes["/token"] = FakeResponse(200, {"status": "SUCCESS"})

    with pytest.raises(UpstreamError, match="missing access token"):
        RatingProviderClient().access_token()


def test_token_rejection_carries_status(transport):
    transport.routes["/token"] = FakeResponse(401, {"message": "bad client"})

    with pytest.raises(UpstreamError) as exc_info:
        RatingProviderClient().access_token()

    assert exc_info.value.upstream_status == 401
    assert exc_info.value.details == {"message": "bad client"}


def test_prod_environment_and_url_overrides(transport, monkeypatch):
    monkeypatch.setenv("DUPR_ENV", "PROD")
    monkeypatch.setenv("DUPR_MATCH_BATCH_URL", "https://proxy.example.com/batch")
    client = RatingProviderClient()

    assert client.env == "prod"
    assert client.url("DUPR_TOKEN_URL") == "https://prod.mydupr.com/api/auth/v1.0/token"
    assert client.url("DUPR_MATCH_BATCH_URL") == "https://proxy.example.com/batch"
    assert client.url("DUPR_USER_CLUBS_URL", duprId="AB 12") == "https://prod.mydupr.com/api/user/v1.0/AB%2012/clubs"


def test_unknown_environment_falls_back_to_uat(transport, monkeypatch):
    monkeypatch.setenv("DUPR_ENV", "staging")

    assert RatingProviderClient().env == "uat"


def test_user_clubs_sends_bearer_token(transport):
    transport.routes["/clubs"] = FakeResponse(200, {"result": {"membership": [{"clubId": 4242, "role": "DIRECTOR"}]}})

    clubs = RatingProviderClient().get_user_clubs("XY99")

    assert clubs == [{"clubId": 4242, "role": "DIRECTOR"}]
    clubs_call = transport.calls[-1]
    assert clubs_call["url"].endswith("/api/user/v1.0/XY99/clubs")
    assert clubs_call["headers"]["Authorization"] == "Bearer tok-1"


def test_batch_failure_is_returned_not_raised(transport):
    transport.routes["/batch"] = FakeResponse(400, {"message": "invalid"})

    response = RatingProviderClient().submit_batch([{"identifier": "1:rr:1"}])

    assert not response.ok
    assert response.status == 400
    assert response.body == {"message": "invalid"}
    assert transport.calls[-1]["json"] == [{"identifier": "1:rr:1"}]


def test_create_failure_raises(transport):
    transport.routes["/create"] = FakeResponse(500, "upstream exploded")

    with pytest.raises(UpstreamError) as exc_info:
        RatingProviderClient().create_match({"identifier": "manual:1"})

    assert exc_info.value.message == "DUPR create match failed"
    assert exc_info.value.details == "upstream exploded"


def test_delete_sends_code_and_identifier(transport):
    transport.routes["/delete"] = FakeResponse(200)

    response = RatingProviderClient().delete_match("MC1", "manual:1")

    assert response.body is None
    call = transport.calls[-1]
    assert call["method"] == "DELETE"
    assert call["json"] == {"matchCode": "MC1", "identifier": "manual:1"}


def test_network_errors_become_upstream_errors(transport):
    transport.routes["/batch"] = requests.ConnectionError("refused")

    with pytest.raises(UpstreamError, match="Unable to reach DUPR match submission endpoint"):
        RatingProviderClient().submit_batch([])


def test_search_timeout_is_reported(transport):
    transport.routes["/match/search"] = requests.Timeout("slow")

    with pytest.raises(UpstreamError) as exc_info:
        RatingProviderClient().search_club_matches(4242, 0, 10)

    assert exc_info.value.details == {"reason": "timeout"}
    assert transport.calls[-1]["timeout"] == 10


def test_search_request_body(transport):
    transport.routes["/match/search"] = FakeResponse(200, {"result": {"matches": []}})

    request_body, response = RatingProviderClient().search_club_matches(4242, 100, 200, offset=5, limit=25)

    assert request_body == {
        "offset": 5,
        "limit": 25,
        "eventFormat": ["DOUBLES", "SINGLES"],
        "startDate": 100,
        "endDate": 200,
        "clubId": 4242,
    }
    assert response.ok


# ============================================================================
# Response parsing helpers
# ============================================================================


def test_parse_match_meta_pairs_batch_entries_by_position():
    body = {"result": [{"matchId": 1, "matchCode": "A"}, {"matchId": "2", "code": "B"}]}

    second = parse_match_meta(body, "7:rr:2", 1)

    assert second.identifier == "7:rr:2"
    assert second.match_id == 2
    assert second.match_code == "B"


def test_parse_match_meta_prefers_echoed_identifier_over_position():
    body = {"result": [{"identifier": "t:b", "matchId": 2, "matchCode": "B"}, {"identifier": "t:a", "matchId": 1}]}

    first = parse_match_meta(body, "t:a", 0)
    assert (first.identifier, first.match_id, first.match_code) == ("t:a", 1, None)

    second = parse_match_meta(body, "t:b", 1)
    assert (second.identifier, second.match_id, second.match_code) == ("t:b", 2, "B")

    # Echoed identifiers but none for this submission: no foreign ids borrowed
    missing = parse_match_meta(body, "t:c", 0)
    assert (missing.identifier, missing.match_id, missing.match_code) == ("t:c", None, None)


def test_parse_match_meta_single_object_and_fallbacks():
    meta = parse_match_meta({"result": {"id": 44, "identifier": "x"}}, "fallback", 0)
    assert (meta.identifier, meta.match_id, meta.match_code) == ("x", 44, None)

    meta = parse_match_meta(None, "fallback", 0)
    assert (meta.identifier, meta.match_id, meta.match_code) == ("fallback", None, None)

    meta = parse_match_meta({"matches": []}, "fallback", 3)
    assert meta.identifier == "fallback"


def test_extract_remote_matches_envelopes():
    assert extract_remote_matches({"result": [{"matchId": 1}]}) == [{"matchId": 1}]
    assert extract_remote_matches({"data": {"items": [{"matchId": 2}]}}) == [{"matchId": 2}]
    assert extract_remote_matches({"matches": [{"matchId": 3}]}) == [{"matchId": 3}]
    assert extract_remote_matches({"status": "SUCCESS"}) == []
    assert extract_remote_matches(["not", "a", "dict"]) == []


def test_normalize_remote_match():
    ref = normalize_remote_match({"matchIdentifier": " 9:po:r1:m1 ", "id": "15", "code": "QQ"})

    assert ref.to_dict() == {"identifier": "9:po:r1:m1", "matchId": 15, "matchCode": "QQ"}
    assert normalize_remote_match("nope") is None


@pytest.mark.parametrize(
    "value, expected",
    [(5, 5), ("12", 12), (" 7 ", 7), (3.0, 3), (3.5, None), (True, None), ("x", None), (None, None)],
)
def test_as_int(value, expected):
    assert as_int(value) == expected


def test_configured_club_id(monkeypatch):
    monkeypatch.setenv("DUPR_CLUB_ID", " 4242 ")
    assert configured_club_id() == 4242

    monkeypatch.setenv("DUPR_CLUB_ID", "")
    with pytest.raises(InternalError):
        configured_club_id()
