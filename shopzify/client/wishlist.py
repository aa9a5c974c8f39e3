import copy
import threading

import requests

from shopzify.client.api import ApiRequestError, DEFAULT_ERROR_MESSAGE
from shopzify.utils.logger import get_logger

logger = get_logger(__name__)


def _log_notification(title, description=None, status="success"):
    level = logger.error if status == "error" else logger.info
    if description:
        level("%s: %s", title, description)
    else:
        level("%s", title)


def _entry_key(entry):
    return str(entry.get("productId"))


def _product_key(product, is_wishlist):
    return str(product.get("productId") if is_wishlist else product.get("_id"))


def _as_entry(product):
    """Shape a catalog product like a wishlist entry for the optimistic list."""
    entry = dict(product)
    entry["productId"] = product.get("_id")
    return entry


class WishlistState:
    """Local mirror of the server wishlist used for immediate feedback.

    ``toggle`` applies its change locally before the request resolves. A
    successful toggle is followed by a refetch that replaces the local list
    with the server's; a failed one restores the last server snapshot.
    ``notify(title, description, status)`` stands in for the toast UI.
    """

    def __init__(self, client, notify=None):
        self.client = client
        self.notify = notify or _log_notification
        self._lock = threading.Lock()
        self._items = []
        self._server_items = []

    @property
    def items(self):
        with self._lock:
            return list(self._items)

    def is_wishlisted(self, product_id):
        key = str(product_id)
        with self._lock:
            return any(_entry_key(item) == key for item in self._items)

    def sync(self, wishlist_payload):
        """Replace local state with server truth."""
        products = ((wishlist_payload or {}).get("wishlist") or {}).get("products") or []
        with self._lock:
            self._server_items = copy.deepcopy(products)
            self._items = copy.deepcopy(products)

    def refresh(self):
        try:
            payload = self.client.get_wishlists()
        except ApiRequestError as e:
            if e.status_code != 404:
                raise
            # no wishlist document yet
            payload = None
        self.sync(payload)
        return self.items

    def toggle(self, product, is_wishlist=False):
        """Optimistically flip ``product`` and send the toggle.

        Returns True when the server accepted the toggle.
        """
        key = _product_key(product, is_wishlist)
        with self._lock:
            if any(_entry_key(item) == key for item in self._items):
                self._items = [item for item in self._items if _entry_key(item) != key]
            else:
                self._items = self._items + [product if is_wishlist else _as_entry(product)]

        try:
            response = self.client.toggle_wishlist(product, is_wishlist=is_wishlist)
        except ApiRequestError as e:
            self._revert()
            logger.warning("Wishlist toggle for product %s failed with %s", key, e.status_code)
            self.notify(e.message, e.sub_message, "error")
            return False
        except requests.RequestException as e:
            self._revert()
            logger.warning("Wishlist toggle for product %s failed: %s", key, e)
            self.notify(DEFAULT_ERROR_MESSAGE, None, "error")
            return False

        message = (response or {}).get("message") or "Something went wrong"
        self.notify(message, None, "success")

        # the mutation invalidates the cached wishlist; refetch server truth
        try:
            self.refresh()
        except ApiRequestError as e:
            logger.warning("Wishlist refetch failed with %s", e.status_code)
        except requests.RequestException as e:
            logger.warning("Wishlist refetch failed: %s", e)
        return True

    def _revert(self):
        with self._lock:
            self._items = copy.deepcopy(self._server_items)
