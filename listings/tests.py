import json
from datetime import timedelta
from decimal import Decimal
from itertools import count
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError
from django.test import SimpleTestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase

from .models import Listing
from .utils import MAX_IMAGE_SIZE, sanitize_title

User = get_user_model()

HOUSE_SPECS = {"type": "apartment", "bedrooms": 2, "bathrooms": 2, "area": 1100}


def create_test_image(name="photo.png", size=128, content_type="image/png"):
    return SimpleUploadedFile(name, b"\x89PNG" + b"0" * size, content_type=content_type)


def make_listing(user, **overrides):
    values = {
        "title": "Sea view apartment",
        "description": "Two bedroom apartment with a balcony facing the sea",
        "location": "Bandra West, Mumbai",
        "type": "rent",
        "rental_price": Decimal("45000"),
        "property_type": "apartment",
        "bedrooms": 2,
        "bathrooms": 2,
        "area": 1100,
    }
    values.update(overrides)
    return Listing.objects.create(user=user, **values)


class FakeCloudinary:
    """Stands in for cloudinary.uploader.upload and hands out unique ids."""

    def __init__(self):
        self.ids = count(1)
        self.calls = []
        self.public_ids = []

    def upload(self, file, **options):
        self.calls.append(options)
        n = next(self.ids)
        public_id = f"{options['folder']}/{options['public_id']}-{n}"
        self.public_ids.append(public_id)
        return {"secure_url": f"https://res.cloudinary.com/demo/{public_id}.jpg", "public_id": public_id}


class ListingTestCase(APITestCase):

    def setUp(self):
        self.user = User.objects.create_user(
            email="owner@example.com", username="owner", fullname="Olive Owner", password="testpass123",
        )
        self.other = User.objects.create_user(
            email="other@example.com", username="other", fullname="Otto Other", password="testpass123",
        )
        self.sign_in("owner@example.com")

        self.cloudinary = FakeCloudinary()
        upload_patcher = patch("cloudinary.uploader.upload", side_effect=self.cloudinary.upload)
        destroy_patcher = patch("cloudinary.uploader.destroy")
        self.mock_upload = upload_patcher.start()
        self.mock_destroy = destroy_patcher.start()
        self.addCleanup(upload_patcher.stop)
        self.addCleanup(destroy_patcher.stop)

    def sign_in(self, email):
        response = self.client.post(reverse("auth-signin"), {"email": email, "password": "testpass123"}, format="json")
        self.assertEqual(response.status_code, 200)


class CreateListingTests(ListingTestCase):
    """Tests for POST /api/listing/<user_id>/create/"""

    def setUp(self):
        super().setUp()
        self.url = reverse("listing-create", args=[self.user.id])
        self.data = {
            "title": "Sunny 2BHK near the park",
            "description": "Spacious two bedroom flat, close to schools and the metro",
            "location": "Koramangala, Bengaluru",
            "type": "sale",
            "sellingPrice": "9500000",
            "discountedPrice": "9000000",
            "houseSpecifications": json.dumps(HOUSE_SPECS),
        }

    def test_create_listing_with_images(self):
        self.data["images"] = [create_test_image("one.png"), create_test_image("two.png")]

        response = self.client.post(self.url, self.data, format="multipart")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["message"], "Listing created successfully")
        listing = Listing.objects.get()
        self.assertEqual(listing.user, self.user)
        self.assertEqual(listing.selling_price, Decimal("9500000"))
        self.assertIsNone(listing.rental_price)
        self.assertEqual(listing.property_type, "apartment")
        self.assertEqual(len(listing.images), 2)

        body = response.data["listing"]
        self.assertEqual(body["houseSpecifications"], HOUSE_SPECS)
        self.assertEqual(body["userId"], self.user.id)
        self.assertEqual(set(body["images"][0]), {"url", "publicId"})

        options = self.cloudinary.calls[0]
        self.assertEqual(options["folder"], f"listings/{self.user.id}/sunny-2bhk-near-the-park")
        self.assertTrue(options["public_id"].startswith("sunny-2bhk-near-the-park-"))
        self.assertTrue(options["public_id"].endswith("-0"))

    def test_rent_listing_drops_selling_price(self):
        self.data.update({"type": "rent", "rentalPrice": "30000"})

        response = self.client.post(self.url, self.data, format="multipart")

        self.assertEqual(response.status_code, 201)
        listing = Listing.objects.get()
        self.assertEqual(listing.rental_price, Decimal("30000"))
        self.assertIsNone(listing.selling_price)

    def test_discount_must_be_below_selling_price(self):
        self.data.update({"sellingPrice": "1000000", "discountedPrice": "1200000"})

        response = self.client.post(self.url, self.data, format="multipart")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["message"], "Discounted price must be less than selling price")
        self.assertFalse(Listing.objects.exists())
        self.mock_upload.assert_not_called()

    def test_sale_requires_selling_price(self):
        del self.data["sellingPrice"]
        del self.data["discountedPrice"]

        response = self.client.post(self.url, self.data, format="multipart")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["message"], "Valid selling price is required for sale listings")

    def test_rent_requires_positive_rental_price(self):
        self.data.update({"type": "rent", "rentalPrice": "0"})

        response = self.client.post(self.url, self.data, format="multipart")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["message"], "Valid rental price is required for rent listings")

    def test_invalid_type(self):
        self.data["type"] = "lease"

        response = self.client.post(self.url, self.data, format="multipart")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["message"], "Type must be either 'rent' or 'sale'")

    def test_blank_title_is_rejected(self):
        self.data["title"] = "   "

        response = self.client.post(self.url, self.data, format="multipart")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["message"], "All required fields must be provided")

    def test_malformed_house_specifications(self):
        self.data["houseSpecifications"] = "{not json"

        response = self.client.post(self.url, self.data, format="multipart")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["message"], "Invalid house specifications format")

    def test_more_than_four_images_is_rejected(self):
        self.data["images"] = [create_test_image(f"{i}.png") for i in range(5)]

        response = self.client.post(self.url, self.data, format="multipart")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["message"], "A listing can have at most 4 images")
        self.mock_upload.assert_not_called()

    def test_oversized_image_is_rejected(self):
        self.data["images"] = [create_test_image("huge.png", size=MAX_IMAGE_SIZE + 1)]

        response = self.client.post(self.url, self.data, format="multipart")

        self.assertEqual(response.status_code, 400)
        self.assertIn("too large", response.data["message"])

    def test_non_image_file_is_rejected(self):
        self.data["images"] = [SimpleUploadedFile("notes.pdf", b"%PDF-1.4", content_type="application/pdf")]

        response = self.client.post(self.url, self.data, format="multipart")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["message"], "notes.pdf is not an image file")

    def test_upload_failure_is_a_server_error(self):
        self.mock_upload.side_effect = RuntimeError("cloudinary down")
        self.data["images"] = [create_test_image()]

        response = self.client.post(self.url, self.data, format="multipart")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data["message"], "Failed to upload images")
        self.assertFalse(Listing.objects.exists())

    def test_failed_save_removes_new_uploads(self):
        self.data["images"] = [create_test_image("one.png"), create_test_image("two.png")]

        with patch("listings.views.ListingSerializer.save", side_effect=DatabaseError("disk full")):
            response = self.client.post(self.url, self.data, format="multipart")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data["message"], "Failed to save listing")
        self.assertFalse(Listing.objects.exists())
        self.assertEqual(len(self.cloudinary.public_ids), 2)
        destroyed = [call.args[0] for call in self.mock_destroy.call_args_list]
        self.assertEqual(destroyed, self.cloudinary.public_ids)

    def test_cannot_create_for_another_user(self):
        response = self.client.post(reverse("listing-create", args=[self.other.id]), self.data, format="multipart")

        self.assertEqual(response.status_code, 403)

    def test_requires_authentication(self):
        self.client.cookies.clear()

        response = self.client.post(self.url, self.data, format="multipart")

        self.assertEqual(response.status_code, 401)


class ListingDetailTests(ListingTestCase):

    def test_detail_is_public(self):
        listing = make_listing(self.user)
        self.client.cookies.clear()

        response = self.client.get(reverse("listing-detail", args=[listing.id]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["title"], listing.title)
        self.assertEqual(response.data["rentalPrice"], Decimal("45000.00"))
        self.assertEqual(response.data["user"]["username"], "owner")

    def test_missing_listing(self):
        response = self.client.get(reverse("listing-detail", args=[9999]))

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["message"], "Listing not found")


class SearchListingTests(ListingTestCase):
    """Tests for GET /api/listing/search/"""

    def setUp(self):
        super().setUp()
        self.url = reverse("listing-search")
        now = timezone.now()
        self.rent_mumbai = make_listing(self.user, title="Rent in Mumbai", location="Andheri, MUMBAI",
                                        rental_price=Decimal("30000"), bedrooms=1, bathrooms=1, area=600)
        self.sale_pune = make_listing(self.user, title="House in Pune", location="Baner, Pune", type="sale",
                                      selling_price=Decimal("8000000"), discounted_price=Decimal("7000000"),
                                      property_type="house", bedrooms=3, bathrooms=2, area=1800)
        self.sale_mumbai = make_listing(self.other, title="Flat in Mumbai", location="Powai, Mumbai", type="sale",
                                        selling_price=Decimal("7500000"), bedrooms=2, bathrooms=2, area=1000)
        # spread creation times so date sorting is deterministic
        for offset, listing in enumerate([self.rent_mumbai, self.sale_pune, self.sale_mumbai]):
            Listing.objects.filter(id=listing.id).update(created_at=now - timedelta(days=10 - offset))

    def ids(self, response):
        self.assertEqual(response.status_code, 200)
        return [item["id"] for item in response.data]

    def test_requires_authentication(self):
        self.client.cookies.clear()
        self.assertEqual(self.client.get(self.url).status_code, 401)

    def test_default_sort_is_newest_first(self):
        response = self.client.get(self.url)
        self.assertEqual(self.ids(response), [self.sale_mumbai.id, self.sale_pune.id, self.rent_mumbai.id])

    def test_date_ascending(self):
        response = self.client.get(self.url, {"sortBy": "date-asc"})
        self.assertEqual(self.ids(response), [self.rent_mumbai.id, self.sale_pune.id, self.sale_mumbai.id])

    def test_filter_by_type(self):
        response = self.client.get(self.url, {"type": "sale"})
        self.assertEqual(set(self.ids(response)), {self.sale_pune.id, self.sale_mumbai.id})

    def test_location_is_case_insensitive_substring(self):
        response = self.client.get(self.url, {"location": "mumbai"})
        self.assertEqual(set(self.ids(response)), {self.rent_mumbai.id, self.sale_mumbai.id})

    def test_price_range_uses_discounted_price(self):
        # Pune house sells at 7,000,000 after discount, not 8,000,000
        response = self.client.get(self.url, {"minPrice": 6900000, "maxPrice": 7200000})
        self.assertEqual(self.ids(response), [self.sale_pune.id])

    def test_price_sorting(self):
        asc = self.ids(self.client.get(self.url, {"sortBy": "price-asc"}))
        desc = self.ids(self.client.get(self.url, {"sortBy": "price-desc"}))

        self.assertEqual(asc, [self.rent_mumbai.id, self.sale_pune.id, self.sale_mumbai.id])
        self.assertEqual(desc, list(reversed(asc)))

    def test_bedroom_and_bathroom_minimums(self):
        response = self.client.get(self.url, {"bedrooms": 2, "bathrooms": 2})
        self.assertEqual(set(self.ids(response)), {self.sale_pune.id, self.sale_mumbai.id})

    def test_property_type_and_area(self):
        response = self.client.get(self.url, {"propertyType": "apartment", "minArea": 700, "maxArea": 1200})
        self.assertEqual(self.ids(response), [self.sale_mumbai.id])

    def test_invalid_parameter(self):
        response = self.client.get(self.url, {"minPrice": "cheap"})

        self.assertEqual(response.status_code, 400)
        self.assertIn("minPrice", response.data["errors"])


class UpdateListingTests(ListingTestCase):
    """Tests for PUT /api/listing/<id>/update/"""

    def setUp(self):
        super().setUp()
        self.listing = make_listing(self.user, images=[
            {"url": "https://res.cloudinary.com/demo/a.jpg", "public_id": "listings/a"},
            {"url": "https://res.cloudinary.com/demo/b.jpg", "public_id": "listings/b"},
            {"url": "https://res.cloudinary.com/demo/c.jpg", "public_id": "listings/c"},
        ])
        self.url = reverse("listing-update", args=[self.listing.id])

    def test_update_fields(self):
        response = self.client.put(self.url, {"title": "Renovated sea view apartment", "rentalPrice": "50000"},
                                   format="multipart")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["message"], "Listing updated successfully")
        self.listing.refresh_from_db()
        self.assertEqual(self.listing.title, "Renovated sea view apartment")
        self.assertEqual(self.listing.rental_price, Decimal("50000"))
        self.assertEqual(len(self.listing.images), 3)

    def test_deleted_images_are_removed_and_new_ones_appended(self):
        response = self.client.put(self.url, {
            "deletedImageIds": json.dumps(["listings/b"]),
            "images": [create_test_image("d.png"), create_test_image("e.png")],
        }, format="multipart")

        self.assertEqual(response.status_code, 200)
        self.listing.refresh_from_db()
        public_ids = self.listing.image_public_ids()
        self.assertEqual(len(public_ids), 4)
        self.assertEqual(public_ids[:2], ["listings/a", "listings/c"])
        self.mock_destroy.assert_called_once_with("listings/b", invalidate=True)

    def test_failed_save_keeps_existing_images(self):
        with patch("listings.views.ListingSerializer.save", side_effect=DatabaseError("disk full")):
            response = self.client.put(self.url, {
                "deletedImageIds": json.dumps(["listings/b"]),
                "images": [create_test_image("d.png")],
            }, format="multipart")

        self.assertEqual(response.status_code, 500)
        self.mock_destroy.assert_called_once_with(self.cloudinary.public_ids[0], invalidate=True)
        self.listing.refresh_from_db()
        self.assertEqual(self.listing.image_public_ids(), ["listings/a", "listings/b", "listings/c"])

    def test_too_many_images_after_update(self):
        response = self.client.put(self.url, {
            "images": [create_test_image("d.png"), create_test_image("e.png")],
        }, format="multipart")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["message"], "A listing can have at most 4 images")

    def test_unknown_deleted_image_id(self):
        response = self.client.put(self.url, {"deletedImageIds": json.dumps(["listings/zzz"])}, format="multipart")

        self.assertEqual(response.status_code, 400)
        self.mock_destroy.assert_not_called()

    def test_switching_to_sale_requires_selling_price(self):
        response = self.client.put(self.url, {"type": "sale"}, format="multipart")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["message"], "Valid selling price is required for sale listings")

    def test_switching_to_sale_clears_rental_price(self):
        response = self.client.put(self.url, {"type": "sale", "sellingPrice": "9000000"}, format="multipart")

        self.assertEqual(response.status_code, 200)
        self.listing.refresh_from_db()
        self.assertIsNone(self.listing.rental_price)
        self.assertEqual(self.listing.selling_price, Decimal("9000000"))

    def test_only_owner_can_update(self):
        self.sign_in("other@example.com")

        response = self.client.put(self.url, {"title": "Mine now, all mine"}, format="multipart")

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["message"], "You can only update your own listings")


class DeleteListingTests(ListingTestCase):

    def test_owner_deletes_listing_and_images(self):
        listing = make_listing(self.user, images=[{"url": "https://x/a.jpg", "public_id": "listings/a"}])

        response = self.client.delete(reverse("listing-delete", args=[listing.id]))

        self.assertEqual(response.status_code, 200)
        self.assertFalse(Listing.objects.filter(id=listing.id).exists())
        self.mock_destroy.assert_called_once_with("listings/a", invalidate=True)

    def test_only_owner_can_delete(self):
        listing = make_listing(self.other)

        response = self.client.delete(reverse("listing-delete", args=[listing.id]))

        self.assertEqual(response.status_code, 403)
        self.assertTrue(Listing.objects.filter(id=listing.id).exists())


class UserListingsTests(ListingTestCase):

    def test_own_listings_newest_first(self):
        older = make_listing(self.user)
        newer = make_listing(self.user, title="Penthouse with terrace")
        Listing.objects.filter(id=older.id).update(created_at=timezone.now() - timedelta(days=3))
        make_listing(self.other)

        response = self.client.get(reverse("user-listings", args=[self.user.id]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual([item["id"] for item in response.data], [newer.id, older.id])

    def test_no_listings_is_not_found(self):
        response = self.client.get(reverse("user-listings", args=[self.user.id]))

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["message"], "No listings found for this user")

    def test_other_users_listings_are_forbidden(self):
        response = self.client.get(reverse("user-listings", args=[self.other.id]))
        self.assertEqual(response.status_code, 403)


class SanitizeTitleTests(SimpleTestCase):

    def test_sanitize_title(self):
        self.assertEqual(sanitize_title("  Sea View -- 2BHK!! "), "sea-view-2bhk")
        self.assertEqual(sanitize_title("***"), "")
