# Sellus API client unit tests
import pytest
import httpx
from unittest.mock import AsyncMock, MagicMock

from wms.services.sellus.client import GatewayResult, SellusClient


def _response(status_code=200, json_data=None, text="", content=b"{}", headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.content = content
    response.headers = headers or {}
    response.json.return_value = json_data
    return response


def _patch_http(mocker, response=None, side_effect=None):
    """Patch httpx.AsyncClient and return the mocked `request` coroutine."""
    mock_client = mocker.patch("httpx.AsyncClient")
    mock_client.return_value.__aexit__.return_value = False
    request = AsyncMock(return_value=response, side_effect=side_effect)
    mock_client.return_value.__aenter__.return_value.request = request
    return mock_client, request


@pytest.fixture
def client():
    return SellusClient(base_url="https://sellus.test/api/", api_key="test-key", branch_id="5", timeout=10.0)


"""
1. Successful calls and request shape
"""

@pytest.mark.asyncio
async def test_get_returns_parsed_json_with_bearer_headers(mocker, client):
    mock_client, request = _patch_http(mocker, _response(json_data={"id": "55", "itemNumber": "1201"}))

    result = await client.get_item("55")

    assert result.success is True
    assert result.data == {"id": "55", "itemNumber": "1201"}
    assert result.status_code == 200
    mock_client.assert_called_once_with(timeout=10.0)

    _, kwargs = request.call_args
    assert kwargs["method"] == "GET"
    assert kwargs["url"] == "https://sellus.test/api/items/55"
    assert kwargs["headers"]["Authorization"] == "Bearer test-key"
    assert kwargs["headers"]["Accept"] == "application/json"
    assert "Content-Type" not in kwargs["headers"]
    assert "json" not in kwargs


@pytest.mark.asyncio
async def test_post_sends_json_body_and_content_type(mocker, client):
    _, request = _patch_http(mocker, _response(json_data={"ok": True}))

    result = await client.update_item("55", {"stock": 7})

    assert result.success is True
    _, kwargs = request.call_args
    assert kwargs["method"] == "POST"
    assert kwargs["json"] == {"stock": 7}
    assert kwargs["headers"]["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_branch_scoped_listing_adds_branch_id(mocker, client):
    _, request = _patch_http(mocker, _response(json_data=[]))

    await client.get_items()

    _, kwargs = request.call_args
    assert kwargs["url"] == "https://sellus.test/api/items"
    assert kwargs["params"] == {"branchId": "5"}


@pytest.mark.asyncio
async def test_purchase_order_search_quotes_the_reference(mocker, client):
    _, request = _patch_http(mocker, _response(json_data=[]))

    await client.search_purchase_orders("GODS-42")

    _, kwargs = request.call_args
    assert kwargs["params"] == {"filter": '"GODS-42"'}


@pytest.mark.asyncio
async def test_path_segments_are_url_encoded(mocker, client):
    _, request = _patch_http(mocker, _response(json_data={}))

    await client.get_item_by_number("AB/12 3")

    _, kwargs = request.call_args
    assert kwargs["url"] == "https://sellus.test/api/items/by-item-number/AB%2F12%203"


@pytest.mark.asyncio
async def test_no_content_is_an_empty_success(mocker, client):
    _patch_http(mocker, _response(status_code=204, content=b""))

    result = await client.update_purchase_order("900", {"note": "GODS-42"})

    assert result.success is True
    assert result.data == {}


"""
2. Failures are values, never exceptions
"""

@pytest.mark.asyncio
async def test_http_error_carries_status_and_body(mocker, client):
    _patch_http(mocker, _response(status_code=500, text="Internal Server Error"))

    result = await client.get_items()

    assert result.success is False
    assert result.status_code == 500
    assert result.error == "HTTP 500: Internal Server Error"
    assert result.remote_unavailable is True


@pytest.mark.asyncio
async def test_unauthorized_includes_www_authenticate_hint(mocker, client):
    _patch_http(
        mocker,
        _response(status_code=401, text="Unauthorized", headers={"WWW-Authenticate": 'Bearer error="invalid_token"'}),
    )

    result = await client.get_items()

    assert result.success is False
    assert result.error == 'HTTP 401: Unauthorized (WWW-Authenticate: Bearer error="invalid_token")'
    assert result.remote_unavailable is False


@pytest.mark.asyncio
async def test_non_json_body_is_a_failure(mocker, client):
    response = _response(text="<html>maintenance</html>", content=b"<html>maintenance</html>")
    response.json.side_effect = ValueError("Expecting value")
    _patch_http(mocker, response)

    result = await client.get_item("55")

    assert result.success is False
    assert result.error.startswith("Non-JSON response body")
    assert result.status_code == 200


@pytest.mark.asyncio
async def test_network_error_is_returned_not_raised(mocker, client):
    _patch_http(mocker, side_effect=httpx.ConnectError("connection refused"))

    result = await client.get_item("55")

    assert result.success is False
    assert result.error == "Network error: connection refused"
    assert result.status_code is None
    assert result.remote_unavailable is True


@pytest.mark.asyncio
async def test_timeout_is_returned_not_raised(mocker, client):
    _patch_http(mocker, side_effect=httpx.ReadTimeout("read timed out"))

    result = await client.get_item("55")

    assert result.success is False
    assert result.error == "Request timed out: read timed out"


@pytest.mark.asyncio
async def test_missing_configuration_makes_no_request(mocker):
    mock_client, request = _patch_http(mocker, _response(json_data={}))
    client = SellusClient(base_url="", api_key="")

    result = await client.get_items()

    assert result.success is False
    assert "not configured" in result.error
    mock_client.assert_not_called()
    request.assert_not_called()


def test_method_not_allowed_flags():
    assert GatewayResult(success=False, status_code=405).method_not_allowed is True
    assert GatewayResult(success=False, status_code=501).method_not_allowed is True
    assert GatewayResult(success=False, status_code=501).remote_unavailable is False
    assert GatewayResult(success=False, status_code=503).remote_unavailable is True
    assert GatewayResult(success=True, status_code=200).remote_unavailable is False


def test_from_settings(settings):
    client = SellusClient.from_settings(settings)

    assert client.base_url == "https://sellus.test/api"
    assert client.api_key == "test-key"
    assert client.branch_id == "5"
