import threading

from shopzify.utils.logger import get_logger

logger = get_logger(__name__)


class AuthSession:
    """Process-wide holder of the current access token.

    Kept in memory only. ``generation`` moves on every login, refresh or
    logout so callers can tell whether the token they sent is still current.
    """

    def __init__(self, access_token=None):
        self._lock = threading.Lock()
        self._access_token = access_token
        self._generation = 0

    @property
    def access_token(self):
        with self._lock:
            return self._access_token

    @property
    def generation(self):
        with self._lock:
            return self._generation

    @property
    def is_authenticated(self):
        return self.access_token is not None

    def snapshot(self):
        """Return ``(access_token, generation)`` read atomically."""
        with self._lock:
            return self._access_token, self._generation

    def set_logged_in(self, access_token):
        with self._lock:
            self._access_token = access_token
            self._generation += 1
        logger.debug("Session authenticated")

    def set_logged_out(self):
        with self._lock:
            was_authenticated = self._access_token is not None
            self._access_token = None
            self._generation += 1
        if was_authenticated:
            logger.info("Session logged out")
