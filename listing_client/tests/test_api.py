from unittest.mock import Mock

import requests
from requests.cookies import RequestsCookieJar
from django.test import SimpleTestCase

from listing_client.api import ApiError, MarketplaceAPI
from listing_client.session import NotSignedIn, Session


def fake_response(status_code=200, payload=None):
    response = Mock(status_code=status_code, ok=status_code < 400)
    if payload is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = payload
    return response


class ApiClientTests(SimpleTestCase):

    def setUp(self):
        self.http = Mock()
        self.http.cookies = RequestsCookieJar()
        self.api = MarketplaceAPI(base_url="http://api.test/api/", http=self.http, timeout=3)

    def test_search_sends_params(self):
        self.http.request.return_value = fake_response(200, [{"id": 1}])

        results = self.api.listings.search_listings({"type": "rent"})

        self.assertEqual(results, [{"id": 1}])
        self.http.request.assert_called_once_with(
            "GET", "http://api.test/api/listing/search/", params={"type": "rent"}, timeout=3,
        )

    def test_error_message_comes_from_body(self):
        self.http.request.return_value = fake_response(403, {"success": False, "message": "Nope"})

        with self.assertRaises(ApiError) as cm:
            self.api.listings.delete_listing(5)

        self.assertEqual(cm.exception.status_code, 403)
        self.assertEqual(cm.exception.message, "Nope")

    def test_error_without_body_uses_fallback(self):
        self.http.request.return_value = fake_response(502)

        with self.assertRaises(ApiError) as cm:
            self.api.listings.get_listing(5)

        self.assertEqual(cm.exception.message, "Failed to fetch listing")

    def test_connection_error(self):
        self.http.request.side_effect = requests.ConnectionError("down")

        with self.assertRaises(ApiError) as cm:
            self.api.auth.wake_up()

        self.assertEqual(cm.exception.status_code, 0)

    def test_no_user_listings_is_an_empty_list(self):
        self.http.request.return_value = fake_response(404, {"message": "No listings found for this user"})

        self.assertEqual(self.api.users.get_user_listings(4), [])

    def test_update_listing_is_multipart(self):
        self.http.request.return_value = fake_response(200, {"listing": {"id": 5}})
        files = [("images", ("a.png", b"x", "image/png"))]

        self.api.listings.update_listing(5, {"title": "Flat", "deletedImageIds": ["p1"]}, files)

        args, kwargs = self.http.request.call_args
        self.assertEqual(args, ("PUT", "http://api.test/api/listing/5/update/"))
        self.assertEqual(kwargs["data"], {"title": "Flat", "deletedImageIds": '["p1"]'})
        self.assertEqual(kwargs["files"], files)


class SessionTests(SimpleTestCase):

    def setUp(self):
        self.api = Mock()
        self.api.client.http.cookies = RequestsCookieJar()
        self.session = Session(self.api)

    def test_signin_keeps_user(self):
        self.api.auth.signin.return_value = {"id": 4, "username": "ada"}

        self.session.signin("ada@example.com", "testpass123")

        self.assertTrue(self.session.is_authenticated)
        self.assertEqual(self.session.user_id, 4)
        self.assertTrue(self.session.owns({"userId": 4}))
        self.assertFalse(self.session.owns({"userId": 5}))

    def test_require_user(self):
        with self.assertRaises(NotSignedIn):
            self.session.require_user()

    def test_signout_clears_state_even_on_error(self):
        self.session.user = {"id": 4}
        self.api.client.http.cookies.set("access_token", "abc")
        self.api.auth.signout.side_effect = ApiError(500, "boom")

        self.session.signout()

        self.assertIsNone(self.session.user)
        self.assertEqual(len(self.api.client.http.cookies), 0)
