import logging

from .api import ApiError

logger = logging.getLogger(__name__)


class NotSignedIn(Exception):
    pass


class Session:
    """
    The signed-in user plus the API bound to their cookie jar. Passed
    explicitly to whatever needs to know who is acting.
    """

    def __init__(self, api, user=None):
        self.api = api
        self.user = user

    @property
    def is_authenticated(self):
        return self.user is not None

    @property
    def user_id(self):
        return self.user['id'] if self.user else None

    def require_user(self):
        if self.user is None:
            raise NotSignedIn("You need to sign in first.")
        return self.user

    def owns(self, listing):
        return self.user is not None and listing.get('userId') == self.user['id']

    def signin(self, email, password):
        self.user = self.api.auth.signin(email, password)
        logger.info(f"Signed in as user id={self.user['id']}")
        return self.user

    def google_signin(self, name, email, avatar=None):
        self.user = self.api.auth.google_auth(name, email, avatar)
        return self.user

    def signout(self):
        """Local state is cleared even when the server call fails."""
        try:
            self.api.auth.signout()
        except ApiError as e:
            logger.warning(f"Sign-out request failed, clearing local session anyway: {e.message}")
        finally:
            self.user = None
            self.api.client.http.cookies.clear()
