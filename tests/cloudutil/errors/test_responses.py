"""Tests for building ApiResponseError from aiohttp responses."""

import json
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from cloudutil.errors.api_error_extractor import ApiErrorExtractor
from cloudutil.errors.exceptions import ApiResponseError
from cloudutil.errors.responses import api_error_from_response, raise_for_api_error


def _make_response(status, body="", content_type="application/json", reason=None):
    response = MagicMock()
    response.status = status
    response.reason = reason
    response.method = "GET"
    response.url = "https://storage.example.com/b/bucket/o/object"
    response.content_type = content_type
    response.text = AsyncMock(return_value=body)
    return response


RATE_LIMIT_BODY = json.dumps(
    {
        "error": {
            "code": 429,
            "message": "The rate of change requests to the object is too high.",
            "errors": [{"reason": "rateLimitExceeded", "domain": "usageLimits"}],
        }
    }
)


class TestApiErrorFromResponse:

    @pytest.mark.asyncio
    async def test_parses_json_body(self):
        error = await api_error_from_response(_make_response(429, RATE_LIMIT_BODY))

        assert isinstance(error, ApiResponseError)
        assert error.status_code == 429
        assert error.details.reasons == ["rateLimitExceeded"]
        assert error.content == RATE_LIMIT_BODY
        assert error.context["http_method"] == "GET"
        assert error.context["http_url"].endswith("/o/object")
        assert ApiErrorExtractor().rate_limited(error)

    @pytest.mark.asyncio
    async def test_non_json_content_type_falls_back_to_status(self):
        response = _make_response(
            502, "<html>Bad Gateway</html>", content_type="text/html", reason="Bad Gateway"
        )
        error = await api_error_from_response(response)

        assert error.details.code == 502
        assert error.details.message == "Bad Gateway"
        assert error.content == "<html>Bad Gateway</html>"

    @pytest.mark.asyncio
    async def test_invalid_json_falls_back_to_status(self):
        error = await api_error_from_response(_make_response(500, "{oops"))
        assert error.details.code == 500
        assert error.details.message == "HTTP 500"

    @pytest.mark.asyncio
    async def test_unreadable_body(self):
        response = _make_response(404, reason="Not Found")
        response.text = AsyncMock(side_effect=aiohttp.ClientPayloadError("truncated"))

        error = await api_error_from_response(response)

        assert error.content is None
        assert error.details.code == 404
        assert ApiErrorExtractor().item_not_found(error)


class TestRaiseForApiError:

    @pytest.mark.asyncio
    async def test_success_does_not_raise(self):
        response = _make_response(200, "{}")
        await raise_for_api_error(response)
        response.text.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_raises(self):
        with pytest.raises(ApiResponseError) as exc_info:
            await raise_for_api_error(_make_response(429, RATE_LIMIT_BODY))

        assert exc_info.value.status_code == 429
