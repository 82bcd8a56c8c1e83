from datetime import timedelta
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from django.utils import timezone
from rest_framework.authtoken.models import Token
from rest_framework.test import APITestCase

from listings.models import Listing
from .authentication import issue_token, revoke_token
from .utils import generate_unique_username

User = get_user_model()


def create_user(email="ada@example.com", username="ada", fullname="Ada Lovelace", password="testpass123"):
    return User.objects.create_user(email=email, username=username, fullname=fullname, password=password)


class SignupTests(APITestCase):
    """Tests for POST /api/auth/signup/"""

    def setUp(self):
        self.url = reverse("auth-signup")
        self.data = {
            "username": "ada",
            "fullname": "Ada Lovelace",
            "email": "ada@example.com",
            "password": "testpass123",
        }

    def test_signup_creates_user_with_hashed_password(self):
        response = self.client.post(self.url, self.data, format="json")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["message"], "User created successfully")
        user = User.objects.get(email="ada@example.com")
        self.assertNotEqual(user.password, "testpass123")
        self.assertTrue(user.check_password("testpass123"))

    def test_duplicate_email_is_a_conflict(self):
        create_user(username="someone-else")

        response = self.client.post(self.url, self.data, format="json")

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["message"], "Email already exists")

    def test_duplicate_username_is_a_conflict(self):
        create_user(email="other@example.com")

        response = self.client.post(self.url, self.data, format="json")

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["message"], "Username already exists")

    def test_missing_fullname_is_rejected(self):
        del self.data["fullname"]

        response = self.client.post(self.url, self.data, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.data["success"])
        self.assertIn("fullname", response.data["errors"])


class SigninTests(APITestCase):
    """Tests for sign-in, sign-out and the access_token cookie"""

    def setUp(self):
        self.user = create_user()
        self.url = reverse("auth-signin")

    def test_signin_sets_http_only_cookie_and_returns_user(self):
        response = self.client.post(self.url, {"email": "ada@example.com", "password": "testpass123"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["id"], self.user.id)
        self.assertNotIn("password", response.data)
        cookie = response.cookies["access_token"]
        self.assertTrue(cookie["httponly"])
        self.assertEqual(cookie.value, Token.objects.get(user=self.user).key)

    def test_unknown_email_is_not_found(self):
        response = self.client.post(self.url, {"email": "nobody@example.com", "password": "x"}, format="json")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["message"], "User not found, please sign up")

    def test_wrong_password_is_unauthorized(self):
        response = self.client.post(self.url, {"email": "ada@example.com", "password": "wrong"}, format="json")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data["message"], "Invalid credentials")

    def test_cookie_authenticates_later_requests(self):
        self.client.post(self.url, {"email": "ada@example.com", "password": "testpass123"}, format="json")

        response = self.client.get(reverse("user-detail", args=[self.user.id]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["username"], "ada")

    def test_protected_route_without_cookie(self):
        response = self.client.get(reverse("user-detail", args=[self.user.id]))

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data["message"], "You are not authenticated.")

    def test_expired_token_is_rejected(self):
        self.client.post(self.url, {"email": "ada@example.com", "password": "testpass123"}, format="json")
        Token.objects.filter(user=self.user).update(created=timezone.now() - timedelta(days=8))

        response = self.client.get(reverse("user-detail", args=[self.user.id]))

        self.assertEqual(response.status_code, 401)
        self.assertFalse(Token.objects.filter(user=self.user).exists())

    def test_signout_revokes_token_and_clears_cookie(self):
        self.client.post(self.url, {"email": "ada@example.com", "password": "testpass123"}, format="json")

        response = self.client.post(reverse("auth-signout"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.cookies["access_token"].value, "")
        self.assertFalse(Token.objects.filter(user=self.user).exists())

    def test_revoke_token_only_removes_that_key(self):
        other = create_user(email="bob@example.com", username="bob", fullname="Bob")
        token = issue_token(self.user)
        other_token = issue_token(other)

        revoke_token(token.key)

        self.assertFalse(Token.objects.filter(key=token.key).exists())
        self.assertTrue(Token.objects.filter(key=other_token.key).exists())

    def test_wake_up(self):
        response = self.client.get(reverse("auth-wake-up"))
        self.assertEqual(response.status_code, 200)


class GoogleAuthTests(APITestCase):

    def test_new_google_user_gets_generated_username(self):
        response = self.client.post(reverse("auth-google"), {
            "name": "Grace Hopper",
            "email": "grace@example.com",
            "avatar": "https://example.com/grace.png",
        }, format="json")

        self.assertEqual(response.status_code, 200)
        user = User.objects.get(email="grace@example.com")
        self.assertTrue(user.username.startswith("gracehopper"))
        self.assertEqual(user.fullname, "Grace Hopper")
        self.assertEqual(user.avatar_url, "https://example.com/grace.png")
        self.assertIn("access_token", response.cookies)

    def test_existing_user_is_signed_in(self):
        user = create_user(email="grace@example.com", username="grace")

        response = self.client.post(reverse("auth-google"), {"name": "Grace", "email": "grace@example.com"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["id"], user.id)
        self.assertEqual(User.objects.count(), 1)

    def test_generated_username_avoids_taken_names(self):
        with patch("accounts.utils._suffix", side_effect=["abcd", "abcdef"]):
            create_user(email="x@example.com", username="gracehopperabcd")
            username = generate_unique_username("Grace Hopper")

        self.assertEqual(username, "gracehopperabcdef")


class ProfileTests(APITestCase):
    """Tests for the /api/user/<id>/... endpoints"""

    def setUp(self):
        self.user = create_user()
        self.other = create_user(email="bob@example.com", username="bob", fullname="Bob")
        self.client.post(reverse("auth-signin"), {"email": "ada@example.com", "password": "testpass123"}, format="json")

    def test_update_profile(self):
        response = self.client.patch(
            reverse("user-profile", args=[self.user.id]),
            {"fullname": "Augusta Ada King", "username": "countess"},
            format="json",
        )

        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertEqual(self.user.fullname, "Augusta Ada King")
        self.assertEqual(self.user.username, "countess")

    def test_update_profile_rejects_taken_username(self):
        response = self.client.patch(
            reverse("user-profile", args=[self.user.id]), {"username": "bob"}, format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["message"], "Username is already taken. Please choose a different one.")

    def test_cannot_touch_another_users_profile(self):
        response = self.client.patch(
            reverse("user-profile", args=[self.other.id]), {"fullname": "Hacked"}, format="json",
        )

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["message"], "Access denied. You can only access your own resources.")
        self.other.refresh_from_db()
        self.assertEqual(self.other.fullname, "Bob")

    def test_change_password(self):
        url = reverse("user-change-password", args=[self.user.id])

        response = self.client.patch(url, {"currentPassword": "testpass123", "newPassword": "newpass456"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password("newpass456"))

    def test_change_password_checks_current_and_length(self):
        url = reverse("user-change-password", args=[self.user.id])

        wrong = self.client.patch(url, {"currentPassword": "nope", "newPassword": "newpass456"}, format="json")
        short = self.client.patch(url, {"currentPassword": "testpass123", "newPassword": "short"}, format="json")

        self.assertEqual(wrong.status_code, 400)
        self.assertEqual(wrong.data["message"], "Current password is incorrect")
        self.assertEqual(short.status_code, 400)
        self.assertEqual(short.data["message"], "New password must be at least 8 characters long")

    @patch("cloudinary.uploader.destroy")
    @patch("cloudinary.uploader.upload")
    def test_avatar_upload_replaces_old_avatar(self, mock_upload, mock_destroy):
        self.user.set_avatar("https://res.cloudinary.com/old.png", "avatars/old")
        mock_upload.return_value = {
            "secure_url": "https://res.cloudinary.com/new.png",
            "public_id": f"avatars/{self.user.id}",
        }
        avatar = SimpleUploadedFile("me.png", b"png-bytes", content_type="image/png")

        response = self.client.patch(
            reverse("user-avatar", args=[self.user.id]), {"avatar": avatar}, format="multipart",
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["avatarUrl"], "https://res.cloudinary.com/new.png")
        mock_destroy.assert_called_once_with("avatars/old", invalidate=True)
        self.user.refresh_from_db()
        self.assertEqual(self.user.avatar_public_id, f"avatars/{self.user.id}")

    @patch("cloudinary.uploader.destroy")
    def test_delete_user_removes_listings_and_images(self, mock_destroy):
        Listing.objects.create(
            user=self.user, title="Sea view flat", description="A bright flat with a view of the sea",
            location="Mumbai, Bandra", type="rent", rental_price=45000,
            property_type="apartment", bedrooms=2, bathrooms=1, area=900,
            images=[{"url": "https://res.cloudinary.com/a.jpg", "public_id": "listings/a"}],
        )

        response = self.client.delete(reverse("user-delete", args=[self.user.id]))

        self.assertEqual(response.status_code, 200)
        self.assertFalse(User.objects.filter(id=self.user.id).exists())
        self.assertFalse(Listing.objects.exists())
        mock_destroy.assert_called_once_with("listings/a", invalidate=True)
