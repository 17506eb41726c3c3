"""Tests for the REST client: auth header, error mapping, 401 handling."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from obras.auth.tokens import StaticTokenProvider, TokenProvider
from obras.core.http import ApiClient, ApiError, UnauthorizedError, get_or_none, quote_id


def _response(status=200, body=None, reason="OK", content_type="application/json", raw=None):
    resp = requests.Response()
    resp.status_code = status
    resp.reason = reason
    if raw is not None:
        resp._content = raw
    elif body is not None:
        resp._content = json.dumps(body).encode("utf-8")
    else:
        resp._content = b""
    resp.headers["Content-Type"] = content_type
    return resp


def _client(resp, provider=None):
    session = MagicMock()
    session.request.return_value = resp
    return ApiClient("https://api.example.test/", provider, timeout=5, session=session), session


class TestRequests:
    def test_get_parses_json_and_sends_bearer(self):
        api, session = _client(_response(body=[{"id": "p1"}]), StaticTokenProvider("tok"))
        assert api.get("/proyectos/v1") == [{"id": "p1"}]

        method, url = session.request.call_args[0]
        kwargs = session.request.call_args[1]
        assert method == "GET"
        assert url == "https://api.example.test/proyectos/v1"
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert kwargs["timeout"] == 5

    def test_no_token_no_auth_header(self):
        api, session = _client(_response(body={}), TokenProvider())
        api.get("/oficinas/v1")
        assert "Authorization" not in session.request.call_args[1]["headers"]

    def test_params_forwarded(self):
        api, session = _client(_response(body=[]))
        api.get("/clientes/v1", params={"filter": "ciudad[eq]Madrid"})
        assert session.request.call_args[1]["params"] == {"filter": "ciudad[eq]Madrid"}

    def test_204_returns_none(self):
        api, _ = _client(_response(status=204, reason="No Content"))
        assert api.delete("/oficinas/v1/o1") is None

    def test_post_sends_json_body(self):
        api, session = _client(_response(status=201, body={"id": "x"}))
        assert api.post("/oficinas/v1", json={"nombre": "N"}) == {"id": "x"}
        assert session.request.call_args[1]["json"] == {"nombre": "N"}


class TestErrors:
    def test_non_2xx_raises_api_error_with_body(self):
        api, _ = _client(_response(status=500, body={"message": "boom"}, reason="Internal Server Error"))
        with pytest.raises(ApiError) as exc:
            api.get("/proyectos/v1")
        err = exc.value
        assert err.status == 500
        assert err.status_text == "Internal Server Error"
        assert err.data == {"message": "boom"}
        assert str(err) == "API Error: 500 Internal Server Error"

    def test_text_error_body(self):
        api, _ = _client(_response(status=400, raw=b"bad input", reason="Bad Request", content_type="text/plain"))
        with pytest.raises(ApiError) as exc:
            api.post("/clientes/v1", json={})
        assert exc.value.data == "bad input"

    def test_401_invalidates_token(self):
        provider = MagicMock()
        provider.get_token.return_value = "stale"
        api, _ = _client(_response(status=401, reason="Unauthorized"), provider)
        with pytest.raises(UnauthorizedError) as exc:
            api.get("/clientes/v1")
        assert exc.value.status == 401
        provider.invalidate.assert_called_once()

    def test_error_to_dict(self):
        err = ApiError("API Error: 404 Not Found", 404, "Not Found", {"x": 1})
        assert err.to_dict() == {
            "error": "API Error: 404 Not Found", "status": 404,
            "status_text": "Not Found", "data": {"x": 1},
        }


class TestDownload:
    def test_returns_content_and_type(self):
        api, session = _client(_response(raw=b"%PDF-1.4", content_type="application/pdf"))
        content, ctype = api.download("POST", "/proyectos/v1/p1/presupuesto/b1")
        assert content == b"%PDF-1.4"
        assert ctype == "application/pdf"
        assert "Content-Type" not in session.request.call_args[1]["headers"]

    def test_default_content_type(self):
        resp = _response(raw=b"data")
        del resp.headers["Content-Type"]
        api, _ = _client(resp)
        assert api.download("GET", "/x")[1] == "application/octet-stream"


class TestHelpers:
    def test_quote_id(self):
        assert quote_id("a b/c") == "a%20b%2Fc"
        assert quote_id("id-1_x.y") == "id-1_x.y"

    def test_get_or_none_maps_404(self):
        api = MagicMock()
        api.get.side_effect = ApiError("nf", 404, "Not Found")
        assert get_or_none(api, "/x") is None

    def test_get_or_none_reraises_other_errors(self):
        api = MagicMock()
        api.get.side_effect = ApiError("boom", 500, "Internal Server Error")
        with pytest.raises(ApiError):
            get_or_none(api, "/x")
