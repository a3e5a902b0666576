import httpx
import pytest

from ghpkg_client import ApiError, AuthError, ClientConfig, GitHubClient, NetworkError
from ghpkg_client.client import login_from_body


def _client(handler) -> GitHubClient:
    cfg = ClientConfig(base_url="https://api.example.test/", token="ghp_secret")
    return GitHubClient(cfg, transport=httpx.MockTransport(handler))


def test_user_raw_sends_bearer_and_accept_headers() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["accept"] = request.headers.get("Accept")
        return httpx.Response(200, text='{"login": "octo"}')

    with _client(handler) as client:
        body = client.user_raw()

    assert body == '{"login": "octo"}'
    assert seen["url"] == "https://api.example.test/user"
    assert seen["auth"] == "Bearer ghp_secret"
    assert seen["accept"] == "application/vnd.github+json"


def test_org_packages_raw_filters_by_type() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, text='[{"name": "sfp"}]')

    with _client(handler) as client:
        assert "sfp" in client.org_packages_raw("flxbl-io")

    assert seen["path"] == "/orgs/flxbl-io/packages"
    assert seen["params"] == {"package_type": "npm"}


def test_unauthorized_raises_auth_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Bad credentials"})

    with _client(handler) as client, pytest.raises(AuthError) as exc:
        client.user_raw()
    assert exc.value.status_code == 401
    assert str(exc.value) == "Bad credentials"


def test_server_error_raises_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway")

    with _client(handler) as client, pytest.raises(ApiError) as exc:
        client.user_raw()
    assert not isinstance(exc.value, AuthError)
    assert exc.value.details == "bad gateway"


def test_transport_failure_raises_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with _client(handler) as client, pytest.raises(NetworkError):
        client.user_raw()


def test_client_config_repr_hides_token() -> None:
    assert "ghp_secret" not in repr(ClientConfig(base_url="https://x", token="ghp_secret"))


def test_login_from_body() -> None:
    assert login_from_body('{"login": "octo", "id": 1}') == "octo"
    assert login_from_body("not json") is None
    assert login_from_body('["login"]') is None
