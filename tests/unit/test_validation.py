"""Unit tests covering request validation and JSON body helpers."""

import pytest

from filebrowser.bootstrap.config import ALLOWED_METHODS, MAX_BODY_BYTES, SECURITY_HEADERS
from filebrowser.domain.http_types import HttpRequest
from filebrowser.domain.response_builders import entity_too_large_response
from filebrowser.pipeline.validation import (
    parse_json_object,
    require_string_fields,
    validate_request,
)


def make_request(
    path: str,
    method: str = "GET",
    headers: dict | None = None,
    body: bytes = b"",
) -> HttpRequest:
    """Construct a HttpRequest test double with sane defaults."""
    return HttpRequest(method, path, headers or {}, body)


def validate_test_request(request: HttpRequest):
    """Helper to call validate_request with test defaults."""
    return validate_request(request, ALLOWED_METHODS, MAX_BODY_BYTES, SECURITY_HEADERS)


@pytest.mark.parametrize("method", ["GET", "POST", "DELETE"])
def test_validate_request_allows_whitelisted_methods(method):
    headers = {"content-length": "0"} if method == "POST" else {}
    request = make_request("/api/tree", method=method, headers=headers)
    assert validate_test_request(request) is None


def test_validate_request_rejects_unknown_method():
    """Reject methods outside the allowlist."""
    request = make_request("/api/tree", method="PUT")
    response = validate_test_request(request)
    assert response is not None
    assert response.status_line == "HTTP/1.1 405 Method Not Allowed"
    allow_header = response.headers.get("Allow", "")
    for method in ALLOWED_METHODS:
        assert method in allow_header


def test_validate_request_rejects_relative_target():
    response = validate_test_request(make_request("api/tree"))
    assert response is not None
    assert response.status_line == "HTTP/1.1 400 Bad Request"


def test_validate_request_requires_content_length_for_post():
    """Reject POST requests missing a Content-Length header."""
    request = make_request("/api/move", method="POST", headers={}, body=b"data")
    response = validate_test_request(request)
    assert response is not None
    assert response.status_line == "HTTP/1.1 400 Bad Request"


def test_validate_request_rejects_length_mismatch():
    """Reject POST requests where body bytes differ from Content-Length."""
    request = make_request(
        "/api/move",
        method="POST",
        headers={"content-length": "4"},
        body=b"x",
    )
    response = validate_test_request(request)
    assert response is not None
    assert response.status_line == "HTTP/1.1 400 Bad Request"


def test_validate_request_rejects_oversized_body():
    """Reject POST payloads larger than the configured maximum."""
    payload = b"a" * (MAX_BODY_BYTES + 1)
    request = make_request(
        "/api/move",
        method="POST",
        headers={"content-length": str(len(payload))},
        body=payload,
    )
    response = validate_test_request(request)
    assert response is not None
    assert (
        response.status_line == entity_too_large_response(SECURITY_HEADERS).status_line
    )
    assert response.close_connection is True


def test_parse_json_object_accepts_objects_only():
    assert parse_json_object(b'{"from": "a", "to": "b"}') == {"from": "a", "to": "b"}
    assert parse_json_object(b"") == {}
    assert parse_json_object(b"[1, 2]") is None
    assert parse_json_object(b"{not json") is None
    assert parse_json_object(b"\xff\xfe") is None


def test_require_string_fields_returns_values_in_order():
    payload = {"to": "b", "from": "a"}
    assert require_string_fields(payload, "from", "to") == ["a", "b"]


@pytest.mark.parametrize(
    "payload",
    [None, {}, {"from": "a"}, {"from": "a", "to": ""}, {"from": 1, "to": "b"}],
)
def test_require_string_fields_rejects_missing_or_blank(payload):
    assert require_string_fields(payload, "from", "to") is None
