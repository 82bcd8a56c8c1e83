"""HTTP client for the marketplace REST API.

Every call goes through one `requests.Session` so the HTTP-only
`access_token` cookie set at sign-in travels with later requests; the
client never reads the token itself.
"""

import json
import logging

import requests
from decouple import config

logger = logging.getLogger(__name__)

API_BASE_URL = config('MARKETPLACE_API_URL', default='http://localhost:8000/api')
REQUEST_TIMEOUT = config('MARKETPLACE_API_TIMEOUT', default=10, cast=float)


class ApiError(Exception):
    """A non-2xx answer (or no answer at all, status_code 0)."""

    def __init__(self, status_code, message):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @property
    def is_not_found(self):
        return self.status_code == 404


class ApiClient:
    def __init__(self, base_url=None, http=None, timeout=None):
        self.base_url = (base_url or API_BASE_URL).rstrip('/')
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout or REQUEST_TIMEOUT

    def url(self, path):
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(self, method, path, fallback_message="Request failed", **kwargs):
        kwargs.setdefault('timeout', self.timeout)
        try:
            response = self.http.request(method, self.url(path), **kwargs)
        except requests.RequestException as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ApiError(0, "Unable to reach the server. Check your connection.") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not response.ok:
            message = fallback_message
            if isinstance(payload, dict):
                message = payload.get('message') or payload.get('error') or payload.get('detail') or message
            logger.info(f"{method} {path} -> {response.status_code}: {message}")
            raise ApiError(response.status_code, message)

        return payload


def _listing_form_data(data):
    """Flatten listing fields for a multipart body; houseSpecifications goes as JSON."""
    form = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, (dict, list)):
            form[key] = json.dumps(value)
        else:
            form[key] = str(value)
    return form


class AuthAPI:
    def __init__(self, client):
        self.client = client

    def signup(self, username, fullname, email, password):
        return self.client.request('POST', 'auth/signup/', "Signup failed", json={
            "username": username,
            "fullname": fullname,
            "email": email,
            "password": password,
        })

    def signin(self, email, password):
        return self.client.request('POST', 'auth/signin/', "Signin failed", json={
            "email": email,
            "password": password,
        })

    def google_auth(self, name, email, avatar=None):
        return self.client.request('POST', 'auth/google/', "Google authentication failed", json={
            "name": name,
            "email": email,
            "avatar": avatar,
        })

    def signout(self):
        return self.client.request('POST', 'auth/signout/', "Signout failed")

    def wake_up(self):
        return self.client.request('GET', 'auth/wake-up/', "Server is not responding")


class ListingAPI:
    def __init__(self, client):
        self.client = client

    def search_listings(self, params):
        """`params` is a mapping of query parameters (see SearchFilters.to_params)."""
        return self.client.request('GET', 'listing/search/', "Failed to search listings", params=params)

    def get_listing(self, listing_id):
        return self.client.request('GET', f'listing/{listing_id}/', "Failed to fetch listing")

    def create_listing(self, user_id, data, files=()):
        return self.client.request(
            'POST', f'listing/{user_id}/create/', "Failed to create listing",
            data=_listing_form_data(data), files=list(files),
        )

    def update_listing(self, listing_id, data, files=()):
        return self.client.request(
            'PUT', f'listing/{listing_id}/update/', "Failed to update listing",
            data=_listing_form_data(data), files=list(files),
        )

    def delete_listing(self, listing_id):
        return self.client.request('DELETE', f'listing/{listing_id}/delete/', "Failed to delete listing")


class UserAPI:
    def __init__(self, client):
        self.client = client

    def get_user(self, user_id):
        return self.client.request('GET', f'user/{user_id}/', "Failed to fetch user")

    def get_user_listings(self, user_id):
        """The server answers 404 for a user with no listings."""
        try:
            return self.client.request('GET', f'user/{user_id}/listings/', "Failed to fetch user listings")
        except ApiError as e:
            if e.is_not_found:
                return []
            raise

    def update_avatar(self, user_id, filename, content, content_type):
        return self.client.request(
            'PATCH', f'user/{user_id}/avatar/', "Failed to upload avatar",
            files=[('avatar', (filename, content, content_type))],
        )

    def update_profile(self, user_id, fullname=None, username=None):
        body = {key: value for key, value in (('fullname', fullname), ('username', username)) if value is not None}
        return self.client.request('PATCH', f'user/{user_id}/profile/', "Failed to update profile", json=body)

    def change_password(self, user_id, current_password, new_password):
        return self.client.request('PATCH', f'user/{user_id}/change-password/', "Failed to change password", json={
            "currentPassword": current_password,
            "newPassword": new_password,
        })

    def delete_user(self, user_id):
        return self.client.request('DELETE', f'user/{user_id}/delete/', "Failed to delete user")


class MarketplaceAPI:
    """Bundles the endpoint groups over a shared client."""

    def __init__(self, base_url=None, http=None, timeout=None):
        self.client = ApiClient(base_url=base_url, http=http, timeout=timeout)
        self.auth = AuthAPI(self.client)
        self.listings = ListingAPI(self.client)
        self.users = UserAPI(self.client)
