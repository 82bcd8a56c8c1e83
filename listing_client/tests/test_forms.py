import json

from django.test import SimpleTestCase

from listing_client.api import ApiError, _listing_form_data
from listing_client.forms import (
    MAX_IMAGE_SIZE, MY_LISTINGS_URL, SIGN_IN_URL, FormValidationError, ImageFile,
    ListingAccessError, ListingForm,
)
from listing_client.notifications import Notifier
from listing_client.session import Session
from .fakes import FakeAPI, FakeListingAPI

OWNER = {"id": 7, "username": "owner", "fullname": "Olive Owner"}

EXISTING = {
    "id": 3,
    "title": "Sea view apartment",
    "description": "Two bedroom apartment with a balcony facing the sea",
    "location": "Bandra West, Mumbai",
    "type": "sale",
    "sellingPrice": "9500000.00",
    "rentalPrice": None,
    "discountedPrice": "0.00",
    "houseSpecifications": {"type": "apartment", "bedrooms": 2, "bathrooms": 2, "area": 1100},
    "images": [
        {"url": "https://res.cloudinary.com/demo/a.jpg", "publicId": "listings/7/sea/a"},
        {"url": "https://res.cloudinary.com/demo/b.jpg", "publicId": "listings/7/sea/b"},
    ],
    "userId": 7,
}


def image(name="photo.png", size=1024, content_type="image/png"):
    return ImageFile(name, b"0" * size, content_type)


def filled_form(session, notifier):
    form = ListingForm(session, notifier)
    form.title = "Sunny 2BHK near the park"
    form.description = "Spacious two bedroom flat, close to schools and the metro"
    form.location = "Koramangala, Bengaluru"
    form.set_type("sale")
    form.set_prices(selling="9500000", discounted="9000000")
    form.set_house_specifications("apartment", "2", "2", "1100")
    return form


class ListingFormTestCase(SimpleTestCase):

    def setUp(self):
        self.listing_api = FakeListingAPI(listing=dict(EXISTING))
        self.session = Session(FakeAPI(self.listing_api), user=dict(OWNER))
        self.notifier = Notifier()


class ImageQueueTests(ListingFormTestCase):

    def test_accepts_small_image(self):
        form = ListingForm(self.session, self.notifier)

        accepted = form.add_images([image(size=4 * 1024 * 1024)])

        self.assertEqual(len(accepted), 1)
        self.assertEqual(form.image_count, 1)
        self.assertTrue(form.previews[0].startswith("data:image/png;base64,"))

    def test_rejects_large_image(self):
        form = ListingForm(self.session, self.notifier)

        accepted = form.add_images([image("big.png", size=6 * 1024 * 1024)])

        self.assertEqual(accepted, [])
        self.assertEqual(form.image_count, 0)
        self.assertEqual(self.notifier.last.title, "File Too Large")

    def test_rejects_non_image(self):
        form = ListingForm(self.session, self.notifier)

        form.add_images([image("notes.pdf", content_type="application/pdf"), image("ok.jpg", content_type="image/jpeg")])

        self.assertEqual([f.name for f in form.new_images], ["ok.jpg"])
        self.assertEqual(self.notifier.errors()[0].message, "notes.pdf is not an image")

    def test_limit_counts_existing_images(self):
        form = ListingForm(self.session, self.notifier, listing_id=3)
        form.populate(EXISTING)

        accepted = form.add_images([image("1.png"), image("2.png"), image("3.png")])

        self.assertEqual(accepted, [])
        self.assertEqual(form.image_count, 2)
        self.assertEqual(self.notifier.last.title, "Too Many Images")

    def test_exactly_at_limit(self):
        form = ListingForm(self.session, self.notifier)
        self.assertEqual(len(form.add_images([image(f"{i}.png") for i in range(4)])), 4)

    def test_remove_images(self):
        form = ListingForm(self.session, self.notifier, listing_id=3)
        form.populate(EXISTING)
        form.add_images([image("new.png")])

        form.remove_new_image(0)
        self.assertTrue(form.remove_existing_image("listings/7/sea/a"))
        self.assertFalse(form.remove_existing_image("listings/7/sea/zzz"))

        self.assertEqual(form.new_images, [])
        self.assertEqual(form.previews, [])
        self.assertEqual(form.deleted_image_ids, ["listings/7/sea/a"])
        self.assertEqual(form.image_count, 1)

    def test_size_limit_boundary(self):
        form = ListingForm(self.session, self.notifier)
        self.assertIsNone(form.image_error(image(size=MAX_IMAGE_SIZE)))
        self.assertIsNotNone(form.image_error(image(size=MAX_IMAGE_SIZE + 1)))


class ValidationTests(ListingFormTestCase):

    def test_valid_form(self):
        self.assertTrue(filled_form(self.session, self.notifier).is_valid())

    def test_discount_not_below_selling_price(self):
        form = filled_form(self.session, self.notifier)
        form.set_prices(selling="1000000", discounted="1200000")

        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors["discountedPrice"], "Discounted price must be less than selling price")

    def test_sale_needs_selling_price(self):
        form = filled_form(self.session, self.notifier)
        form.set_prices()

        self.assertIn("sellingPrice", form.validate())

    def test_rent_needs_rental_price(self):
        form = filled_form(self.session, self.notifier)
        form.set_type("rent")

        errors = form.validate()

        self.assertEqual(errors["rentalPrice"], "Rental price is required for rent listings")
        self.assertIsNone(form.selling_price)

    def test_text_lengths_and_specs(self):
        form = filled_form(self.session, self.notifier)
        form.title = "Flat"
        form.description = "Too short"
        form.set_house_specifications("", "21", "-1", "0")

        errors = form.validate()

        self.assertEqual(errors["title"], "Title must be at least 5 characters")
        self.assertEqual(errors["description"], "Description must be at least 20 characters")
        self.assertEqual(errors["houseSpecifications.type"], "Property type is required")
        self.assertEqual(errors["houseSpecifications.bedrooms"], "Maximum 20 bedrooms allowed")
        self.assertEqual(errors["houseSpecifications.bathrooms"], "Bathrooms must be 0 or more")
        self.assertEqual(errors["houseSpecifications.area"], "Area must be greater than 0")


class SubmitTests(ListingFormTestCase):

    def test_sale_payload_only_carries_sale_prices(self):
        form = filled_form(self.session, self.notifier)
        form.add_images([image("front.png")])

        data, files = form.build_payload()

        self.assertEqual(data["sellingPrice"], 9500000)
        self.assertEqual(data["discountedPrice"], 9000000)
        self.assertNotIn("rentalPrice", data)
        self.assertNotIn("deletedImageIds", data)
        self.assertEqual(data["houseSpecifications"]["area"], 1100)
        self.assertEqual(files, [("images", ("front.png", b"0" * 1024, "image/png"))])

    def test_invalid_form_is_not_sent(self):
        form = filled_form(self.session, self.notifier)
        form.set_prices(selling="1000000", discounted="1200000")

        with self.assertRaises(FormValidationError):
            form.build_payload()
        self.assertIsNone(form.submit())

        self.assertEqual(self.listing_api.created, [])
        self.assertEqual(self.notifier.last.title, "Invalid Listing")

    def test_create(self):
        form = filled_form(self.session, self.notifier)

        listing = form.submit()

        self.assertEqual(listing["userId"], OWNER["id"])
        user_id, data, files = self.listing_api.created[0]
        self.assertEqual(user_id, OWNER["id"])
        self.assertEqual(self.notifier.last.title, "Listing Created!")

    def test_signed_out_user_cannot_submit(self):
        self.session.user = None
        form = filled_form(self.session, self.notifier)

        self.assertIsNone(form.submit())
        self.assertEqual(self.notifier.last.title, "Not Signed In")

    def test_server_error_is_reported(self):
        self.listing_api.error = ApiError(400, "A listing can have at most 4 images")
        form = filled_form(self.session, self.notifier)

        self.assertIsNone(form.submit())
        self.assertEqual(self.notifier.last.title, "Creation Failed")
        self.assertEqual(self.notifier.last.message, "A listing can have at most 4 images")

    def test_edit_sends_removed_image_ids_and_new_files_only(self):
        form = ListingForm.load_for_edit(self.session, 3, self.notifier)
        form.remove_existing_image("listings/7/sea/b")
        form.add_images([image("kitchen.png")])

        listing = form.submit()

        listing_id, data, files = self.listing_api.updated[0]
        self.assertEqual(listing_id, 3)
        self.assertEqual(data["deletedImageIds"], ["listings/7/sea/b"])
        self.assertEqual([upload[1][0] for upload in files], ["kitchen.png"])
        self.assertEqual(listing["title"], EXISTING["title"])
        self.assertEqual(self.notifier.last.title, "Listing Updated!")
        # the form now reflects the saved listing
        self.assertEqual(form.deleted_image_ids, [])
        self.assertEqual(form.new_images, [])


class LoadForEditTests(ListingFormTestCase):

    def test_prefills_fields(self):
        form = ListingForm.load_for_edit(self.session, 3, self.notifier)

        self.assertTrue(form.is_edit)
        self.assertEqual(form.title, EXISTING["title"])
        self.assertEqual(form.selling_price, 9500000.0)
        self.assertEqual(form.property_type, "apartment")
        self.assertEqual(form.image_count, 2)

    def test_requires_sign_in(self):
        self.session.user = None

        with self.assertRaises(ListingAccessError) as cm:
            ListingForm.load_for_edit(self.session, 3, self.notifier)
        self.assertEqual(cm.exception.redirect_to, SIGN_IN_URL)

    def test_other_users_listing(self):
        self.session.user = {"id": 8, "username": "other"}

        with self.assertRaises(ListingAccessError) as cm:
            ListingForm.load_for_edit(self.session, 3, self.notifier)

        self.assertEqual(cm.exception.redirect_to, MY_LISTINGS_URL)
        self.assertEqual(self.notifier.last.title, "Access Denied")

    def test_missing_listing(self):
        with self.assertRaises(ListingAccessError) as cm:
            ListingForm.load_for_edit(self.session, 404, self.notifier)

        self.assertEqual(cm.exception.redirect_to, MY_LISTINGS_URL)
        self.assertEqual(self.notifier.last.message, "Failed to load listing data")


class PayloadEncodingTests(SimpleTestCase):

    def test_house_specifications_go_as_json(self):
        form = _listing_form_data({
            "title": "Flat",
            "sellingPrice": 100,
            "rentalPrice": None,
            "houseSpecifications": {"type": "land", "bedrooms": 0, "bathrooms": 0, "area": 10},
            "deletedImageIds": ["a"],
        })

        self.assertEqual(form["sellingPrice"], "100")
        self.assertNotIn("rentalPrice", form)
        self.assertEqual(json.loads(form["houseSpecifications"])["type"], "land")
        self.assertEqual(json.loads(form["deletedImageIds"]), ["a"])
