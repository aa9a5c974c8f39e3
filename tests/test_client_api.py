"""ShopzifyClient request wrapper: bearer header, refresh-on-401 and single-flight refresh."""

import json
import threading
import time
from unittest.mock import MagicMock

import pytest
import requests

from shopzify.client.api import ApiRequestError, ShopzifyClient, DEFAULT_ERROR_MESSAGE
from shopzify.client.session import AuthSession

BASE = "http://api.test"
EXPIRED = {"message": "Token has expired", "subMessage": "Please login again"}


def make_response(status, payload=None):
    response = requests.Response()
    response.status_code = status
    if payload is None:
        response._content = b""
    else:
        response._content = json.dumps(payload).encode()
        response.headers["Content-Type"] = "application/json"
    return response


def make_client(*responses, token="old"):
    http = MagicMock()
    http.request.side_effect = list(responses)
    auth = AuthSession(token)
    return ShopzifyClient(BASE, auth=auth, http=http), http, auth


def sent(http, index):
    call = http.request.call_args_list[index]
    method, url = call.args
    return method, url, call.kwargs["headers"]


class TestBearerHeader:
    def test_attaches_token(self):
        client, http, _ = make_client(make_response(200, {"productDetails": []}))

        assert client.get_products() == {"productDetails": []}
        method, url, headers = sent(http, 0)
        assert (method, url) == ("GET", f"{BASE}/product")
        assert headers["Authorization"] == "Bearer old"

    def test_anonymous_requests_have_no_authorization(self):
        client, http, _ = make_client(make_response(200, []), token=None)

        client.search_products("summer dress")

        method, url, headers = sent(http, 0)
        assert url == f"{BASE}/product/search/summer%20dress"
        assert "Authorization" not in headers

    def test_timeout_is_passed_through(self):
        client, http, _ = make_client(make_response(200, []))
        client.timeout = 5

        client.search_category("shirts")

        assert http.request.call_args.kwargs["timeout"] == 5


class TestRefreshOn401:
    def test_refreshes_once_and_retries_with_new_token(self):
        client, http, auth = make_client(
            make_response(401, EXPIRED),
            make_response(200, {"accessToken": "new"}),
            make_response(200, {"wishlist": {"products": []}}),
        )

        assert client.get_wishlists() == {"wishlist": {"products": []}}

        assert http.request.call_count == 3
        assert sent(http, 0)[2]["Authorization"] == "Bearer old"
        method, url, headers = sent(http, 1)
        assert (method, url) == ("POST", f"{BASE}/auth/refresh")
        assert "Authorization" not in headers
        assert sent(http, 2)[:2] == ("GET", f"{BASE}/user-wishlist/wishlists")
        assert sent(http, 2)[2]["Authorization"] == "Bearer new"
        assert auth.access_token == "new"

    def test_retry_resends_the_body(self):
        client, http, _ = make_client(
            make_response(401, EXPIRED),
            make_response(200, {"accessToken": "new"}),
            make_response(200, {"message": "Product added to wishlist"}),
        )

        client.toggle_wishlist({"_id": 7})

        first, retry = http.request.call_args_list[0], http.request.call_args_list[2]
        assert first.kwargs["json"] == retry.kwargs["json"] == {"product": {"_id": 7}}

    def test_failed_refresh_logs_out_and_surfaces_original_error(self):
        client, http, auth = make_client(
            make_response(401, EXPIRED),
            make_response(401, {"message": "Unauthorized"}),
        )

        with pytest.raises(ApiRequestError) as excinfo:
            client.get_wishlists()

        assert excinfo.value.status_code == 401
        assert excinfo.value.message == "Token has expired"
        assert excinfo.value.sub_message == "Please login again"
        assert http.request.call_count == 2
        assert not auth.is_authenticated

    def test_refresh_without_token_in_body_counts_as_failure(self):
        client, http, auth = make_client(
            make_response(401, EXPIRED),
            make_response(200, {}),
        )

        with pytest.raises(ApiRequestError):
            client.get_cart_products()

        assert http.request.call_count == 2
        assert auth.access_token is None

    def test_network_error_during_refresh_logs_out(self):
        client, http, auth = make_client(
            make_response(401, EXPIRED),
            requests.ConnectionError("refused"),
        )

        with pytest.raises(ApiRequestError):
            client.get_checkout()

        assert auth.access_token is None

    def test_retry_is_not_repeated(self):
        client, http, auth = make_client(
            make_response(401, EXPIRED),
            make_response(200, {"accessToken": "new"}),
            make_response(401, EXPIRED),
        )

        with pytest.raises(ApiRequestError) as excinfo:
            client.get_wishlists()

        assert excinfo.value.status_code == 401
        assert http.request.call_count == 3

    def test_login_rejection_does_not_refresh(self):
        client, http, auth = make_client(
            make_response(401, {"message": "Invalid credentials"}), token=None
        )

        with pytest.raises(ApiRequestError) as excinfo:
            client.login("ada@example.com", "wrong-password")

        assert excinfo.value.message == "Invalid credentials"
        assert http.request.call_count == 1

    def test_other_errors_pass_through(self):
        client, http, _ = make_client(make_response(500, {"message": "Something went wrong"}))

        with pytest.raises(ApiRequestError) as excinfo:
            client.add_to_cart({"_id": 1})

        assert excinfo.value.status_code == 500
        assert http.request.call_count == 1

    def test_error_without_message_gets_generic_text(self):
        client, _, _ = make_client(make_response(502))

        with pytest.raises(ApiRequestError) as excinfo:
            client.remove_all_products()

        assert excinfo.value.message == DEFAULT_ERROR_MESSAGE
        assert excinfo.value.sub_message is None

    def test_non_json_success_body_raises_api_error(self):
        response = make_response(200)
        response._content = b"<html>Bad gateway</html>"
        response.headers["Content-Type"] = "text/html"
        client, _, _ = make_client(response)

        with pytest.raises(ApiRequestError) as excinfo:
            client.get_products()

        assert excinfo.value.status_code == 200
        assert excinfo.value.message == DEFAULT_ERROR_MESSAGE


class FakeServer:
    """Transport that rejects the old token until a (slow) refresh hands out a new one."""

    def __init__(self):
        self.refresh_calls = 0
        self._lock = threading.Lock()

    def request(self, method, url, headers=None, **kwargs):
        if url.endswith("/auth/refresh"):
            with self._lock:
                self.refresh_calls += 1
            time.sleep(0.05)
            return make_response(200, {"accessToken": "new"})
        if headers.get("Authorization") == "Bearer new":
            return make_response(200, {"wishlist": {"products": []}})
        time.sleep(0.01)
        return make_response(401, EXPIRED)


class TestSingleFlightRefresh:
    def test_concurrent_401s_share_one_refresh(self):
        server = FakeServer()
        auth = AuthSession("old")
        client = ShopzifyClient(BASE, auth=auth, http=server)
        barrier = threading.Barrier(8)
        results, errors = [], []

        def worker():
            barrier.wait()
            try:
                results.append(client.get_wishlists())
            except Exception as e:  # collected for the assertion below
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert errors == []
        assert len(results) == 8
        assert server.refresh_calls == 1
        assert auth.access_token == "new"

    def test_new_generation_triggers_a_new_refresh(self):
        server = FakeServer()
        auth = AuthSession("old")
        client = ShopzifyClient(BASE, auth=auth, http=server)

        client.get_wishlists()
        auth.set_logged_in("old")  # e.g. a stale token restored from elsewhere
        client.get_wishlists()

        assert server.refresh_calls == 2


class TestAuthCalls:
    def test_login_stores_token(self):
        client, http, auth = make_client(make_response(200, {"accessToken": "fresh"}), token=None)

        client.login("ada@example.com", "password123")

        assert auth.access_token == "fresh"
        assert http.request.call_args.kwargs["json"] == {"email": "ada@example.com", "password": "password123"}

    def test_logout_clears_session_even_on_error(self):
        client, _, auth = make_client(make_response(500, {"message": "Something went wrong"}))

        with pytest.raises(ApiRequestError):
            client.logout()

        assert not auth.is_authenticated

    def test_explicit_refresh(self):
        client, _, auth = make_client(make_response(200, {"accessToken": "new"}))

        assert client.refresh() == "new"
        assert auth.access_token == "new"

    def test_nav_path_without_sublabel(self):
        client, http, _ = make_client(make_response(200, {"products": []}))

        client.search_nav_products("men")

        assert sent(http, 0)[1] == f"{BASE}/product/nav/men"
