"""Tests for the translation client."""

import json

import httpx
import pytest

from telescope.core.config import TranslationConfig
from telescope.core.errors import (
    DecodingError, InvalidEndpoint, NoConnectivity, ServerError, Timeout,
    TranslationError, UnknownTransport
)
from telescope.core.translation import TranslationClient

ENDPOINT = "https://translate.example.test/query"


def make_client(handler, endpoint: str = ENDPOINT) -> TranslationClient:
    transport = httpx.MockTransport(handler)
    return TranslationClient(
        TranslationConfig(endpoint=endpoint),
        client=httpx.AsyncClient(transport=transport)
    )


@pytest.mark.asyncio
async def test_translate_posts_payload_and_decodes():
    """Test request body and successful decoding."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["content_type"] = request.headers["content-type"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "search_command": 'kind:pdf -onlyin "Downloads"',
            "start_date_filter": None
        })

    client = make_client(handler)
    response = await client.translate("PDFs from Downloads")

    assert seen["method"] == "POST"
    assert seen["content_type"] == "application/json"
    assert seen["body"] == {
        "query": "PDFs from Downloads",
        "modelType": "gemini",
        "modelConfig": {"model": "gemini-2.0-flash"}
    }
    assert response.search_command == 'kind:pdf -onlyin "Downloads"'
    assert response.start_date_filter is None


@pytest.mark.asyncio
@pytest.mark.parametrize("endpoint", ["", "not a url", "ftp://example.test/x"])
async def test_invalid_endpoint(endpoint):
    """Test misconfigured endpoints fail before any request."""
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={})

    client = make_client(handler, endpoint=endpoint)
    with pytest.raises(InvalidEndpoint):
        await client.translate("anything")
    assert calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [400, 404, 500, 503])
async def test_non_2xx_is_server_error(status):
    client = make_client(lambda request: httpx.Response(status, text="nope"))
    with pytest.raises(ServerError) as excinfo:
        await client.translate("anything")
    assert excinfo.value.status_code == status


@pytest.mark.asyncio
async def test_connect_error_is_no_connectivity():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)
    with pytest.raises(NoConnectivity):
        await client.translate("anything")


@pytest.mark.asyncio
async def test_timeout():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    client = make_client(handler)
    with pytest.raises(Timeout):
        await client.translate("anything")


@pytest.mark.asyncio
async def test_other_transport_error_is_unknown():
    def handler(request):
        raise httpx.TooManyRedirects("loop", request=request)

    client = make_client(handler)
    with pytest.raises(UnknownTransport) as excinfo:
        await client.translate("anything")
    assert isinstance(excinfo.value.cause, httpx.TooManyRedirects)


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b"<html>oops</html>", b'["kind:pdf"]', b'{"search_command": 5}'])
async def test_bad_body_is_decoding_error(body):
    client = make_client(lambda request: httpx.Response(200, content=body))
    with pytest.raises(DecodingError):
        await client.translate("anything")


@pytest.mark.asyncio
async def test_single_attempt_no_retry():
    """Test failures are not retried."""
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(502)

    client = make_client(handler)
    with pytest.raises(TranslationError):
        await client.translate("anything")
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_owned_client_closed_on_exit():
    async with TranslationClient(TranslationConfig(endpoint=ENDPOINT)) as client:
        inner = client._get_client()
    assert inner.is_closed
