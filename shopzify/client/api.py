"""HTTP client for the Shopzify storefront API.

Every call goes through :meth:`ShopzifyClient.request`, which attaches the
bearer token and, on a 401, refreshes the access token once and retries the
original request once. Refreshes are single-flight: concurrent requests that
were rejected with the same token wait for one refresh instead of each
issuing their own.
"""

import threading
from urllib.parse import quote

import requests

from shopzify.client.session import AuthSession
from shopzify.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_ERROR_MESSAGE = "oops, please try again!"

REFRESH_PATH = "/auth/refresh"

# A 401 from these means bad credentials, not an expired access token
NO_REAUTH_PATHS = frozenset({"/auth/login", "/auth/signup", REFRESH_PATH, "/auth/logout"})


class ApiRequestError(Exception):
    """Non-2xx response from the API, carrying its ``message``/``subMessage``."""

    def __init__(self, status_code, message=None, sub_message=None, payload=None):
        self.status_code = status_code
        self.message = message or DEFAULT_ERROR_MESSAGE
        self.sub_message = sub_message
        self.payload = payload or {}
        super().__init__(f"{status_code}: {self.message}")


def _json_or_empty(response):
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def _segment(value):
    return quote(str(value), safe="")


class ShopzifyClient:
    def __init__(self, base_url, auth=None, http=None, timeout=None):
        self.base_url = base_url.rstrip("/")
        self.auth = auth if auth is not None else AuthSession()
        # the transport keeps the refresh cookie between calls
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout
        self._refresh_lock = threading.Lock()

    # -------------------------
    # Transport
    # -------------------------
    def _send(self, method, path, token=None, **kwargs):
        headers = dict(kwargs.pop("headers", None) or {})
        headers.setdefault("Accept", "application/json")
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if self.timeout is not None:
            kwargs.setdefault("timeout", self.timeout)
        return self.http.request(method, self.base_url + path, headers=headers, **kwargs)

    def request(self, method, path, **kwargs):
        """Send a request, refreshing the access token and retrying once on 401."""
        token, generation = self.auth.snapshot()
        response = self._send(method, path, token=token, **kwargs)
        if response.status_code != 401 or path in NO_REAUTH_PATHS:
            return response

        new_token = self._refresh_access_token(generation)
        if not new_token:
            return response
        return self._send(method, path, token=new_token, **kwargs)

    def _refresh_access_token(self, seen_generation):
        """Refresh once per session generation and return the current token.

        ``seen_generation`` is the generation the rejected request was sent
        with. If the session moved on while we waited for the lock, somebody
        else already refreshed (or logged out) and their outcome is reused.
        """
        with self._refresh_lock:
            token, generation = self.auth.snapshot()
            if generation != seen_generation:
                return token

            logger.info("Access token rejected, refreshing")
            try:
                # the refresh credential is the cookie, never the expired bearer token
                response = self._send("POST", REFRESH_PATH)
            except requests.RequestException as e:
                logger.warning("Token refresh failed: %s", e)
                response = None

            new_token = None
            if response is not None and response.ok:
                new_token = _json_or_empty(response).get("accessToken")

            if new_token:
                self.auth.set_logged_in(new_token)
            else:
                logger.warning("Token refresh rejected, logging out")
                self.auth.set_logged_out()
            return new_token

    def _call(self, method, path, **kwargs):
        response = self.request(method, path, **kwargs)
        if not response.ok:
            payload = _json_or_empty(response)
            raise ApiRequestError(
                response.status_code,
                payload.get("message"),
                payload.get("subMessage"),
                payload,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            # e.g. an HTML page from a proxy in front of the API
            logger.warning("Non-JSON %s response from %s %s", response.status_code, method, path)
            raise ApiRequestError(response.status_code)

    # -------------------------
    # Products
    # -------------------------
    def get_products(self, limit=None):
        params = {"limit": limit} if limit else None
        return self._call("GET", "/product", params=params)

    def get_admin_products(self, limit=None):
        params = {"limit": limit} if limit else None
        return self._call("GET", "/product/admin/products", params=params)

    def search_products(self, key):
        return self._call("GET", f"/product/search/{_segment(key)}")

    def search_nav_products(self, menu, sublabel=None):
        path = f"/product/nav/{_segment(menu)}"
        if sublabel:
            path += f"/{_segment(sublabel)}"
        return self._call("GET", path)

    def search_category(self, key):
        return self._call("GET", f"/product/category/{_segment(key)}")

    def create_product(self, fields):
        return self._call("POST", "/product", json=fields)

    def update_product(self, product_id, fields):
        return self._call("PATCH", f"/product/{_segment(product_id)}", json=fields)

    def delete_product(self, product_id):
        return self._call("DELETE", f"/product/{_segment(product_id)}")

    # -------------------------
    # Wishlist
    # -------------------------
    def toggle_wishlist(self, product, is_wishlist=False):
        body = {"product": product}
        if is_wishlist:
            body["isWishList"] = True
        return self._call("POST", "/user-wishlist/wishlist/toggle", json=body)

    def get_wishlists(self):
        return self._call("GET", "/user-wishlist/wishlists")

    # -------------------------
    # Cart & checkout
    # -------------------------
    def add_to_cart(self, product):
        return self._call("POST", "/user-cart/post/cart", json={"product": product})

    def remove_from_cart(self, product):
        return self._call("POST", "/user-cart/remove/cart", json={"product": product})

    def remove_all_products(self):
        return self._call("PUT", "/user-cart/delete/cart")

    def get_cart_products(self):
        return self._call("GET", "/user-cart/carts")

    def create_checkout(self, checkout_data):
        return self._call("POST", "/user-checkout/post/checkout", json=checkout_data)

    def get_checkout(self):
        return self._call("GET", "/user-checkout/get/checkout")

    # -------------------------
    # Auth
    # -------------------------
    def signup(self, email, password, name=None):
        body = {"email": email, "password": password}
        if name:
            body["name"] = name
        return self._call("POST", "/auth/signup", json=body)

    def login(self, email, password):
        payload = self._call("POST", "/auth/login", json={"email": email, "password": password})
        self.auth.set_logged_in(payload["accessToken"])
        return payload

    def refresh(self):
        """Explicitly refresh the access token; returns it, or None when the session ended."""
        return self._refresh_access_token(self.auth.generation)

    def logout(self):
        try:
            return self._call("POST", "/auth/logout")
        finally:
            self.auth.set_logged_out()
