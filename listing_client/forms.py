"""Create/edit listing form: field rules, image queue, multipart payload."""

import base64
import logging
import mimetypes
import os
from dataclasses import dataclass

from .api import ApiError
from .filters import LISTING_TYPES, PROPERTY_TYPES, parse_number
from .session import NotSignedIn

logger = logging.getLogger(__name__)

MAX_IMAGES = 4
MAX_IMAGE_SIZE = 5 * 1024 * 1024
MY_LISTINGS_URL = '/my-listings'
SIGN_IN_URL = '/sign-in'


@dataclass
class ImageFile:
    name: str
    content: bytes
    content_type: str

    @classmethod
    def from_path(cls, path):
        content_type = mimetypes.guess_type(path)[0] or 'application/octet-stream'
        with open(path, 'rb') as fh:
            return cls(os.path.basename(path), fh.read(), content_type)

    @property
    def size(self):
        return len(self.content)

    def preview(self):
        encoded = base64.b64encode(self.content).decode('ascii')
        return f"data:{self.content_type};base64,{encoded}"

    def as_upload(self):
        return ('images', (self.name, self.content, self.content_type))


class FormValidationError(Exception):
    def __init__(self, errors):
        self.errors = errors
        super().__init__(next(iter(errors.values()), "Invalid form"))


class ListingAccessError(Exception):
    """The edit form can't be shown; send the user to `redirect_to`."""

    def __init__(self, message, redirect_to):
        super().__init__(message)
        self.message = message
        self.redirect_to = redirect_to


def _length_error(value, label, minimum, maximum):
    value = (value or '').strip()
    if len(value) < minimum:
        return f"{label} must be at least {minimum} characters"
    if len(value) > maximum:
        return f"{label} must be less than {maximum} characters"
    return None


def _range_error(value, label, minimum, maximum, too_small, too_large):
    if value is None:
        return f"{label} is required"
    if value < minimum:
        return too_small
    if value > maximum:
        return too_large
    return None


class ListingForm:
    """
    State behind the create and edit pages. Edit mode (`listing_id` set)
    also tracks the listing's current images and which of them the user
    removed, and sends only newly picked files.
    """

    def __init__(self, session, notifier, listing_id=None):
        self.session = session
        self.notifier = notifier
        self.listing_id = listing_id

        self.title = ''
        self.description = ''
        self.location = ''
        self.type = ''
        self.selling_price = None
        self.rental_price = None
        self.discounted_price = None
        self.property_type = ''
        self.bedrooms = None
        self.bathrooms = None
        self.area = None

        self.existing_images = []
        self.deleted_image_ids = []
        self.new_images = []
        self.previews = []
        self.errors = {}

    @property
    def is_edit(self):
        return self.listing_id is not None

    # === Edit flow ===

    @classmethod
    def load_for_edit(cls, session, listing_id, notifier):
        if not session.is_authenticated:
            raise ListingAccessError("You need to sign in first.", SIGN_IN_URL)

        try:
            listing = session.api.listings.get_listing(listing_id)
        except ApiError as e:
            logger.warning(f"Could not load listing {listing_id} for editing: {e.message}")
            notifier.error("Error", "Failed to load listing data")
            raise ListingAccessError("Failed to load listing data", MY_LISTINGS_URL) from e

        if not session.owns(listing):
            notifier.error("Access Denied", "You can only edit your own listings")
            raise ListingAccessError("You can only edit your own listings", MY_LISTINGS_URL)

        form = cls(session, notifier, listing_id=listing_id)
        form.populate(listing)
        return form

    def populate(self, listing):
        specs = listing.get('houseSpecifications') or {}
        self.title = listing.get('title') or ''
        self.description = listing.get('description') or ''
        self.location = listing.get('location') or ''
        self.type = listing.get('type') or ''
        self.selling_price = parse_number(listing.get('sellingPrice'))
        self.rental_price = parse_number(listing.get('rentalPrice'))
        self.discounted_price = parse_number(listing.get('discountedPrice'))
        self.property_type = specs.get('type') or ''
        self.bedrooms = parse_number(specs.get('bedrooms'))
        self.bathrooms = parse_number(specs.get('bathrooms'))
        self.area = parse_number(specs.get('area'))
        self.existing_images = list(listing.get('images') or [])
        self.deleted_image_ids = []
        self.new_images = []
        self.previews = []

    # === Fields ===

    def set_type(self, listing_type):
        """Switching type drops the price that no longer applies."""
        self.type = listing_type
        if listing_type == 'rent':
            self.selling_price = None
            self.discounted_price = None
        elif listing_type == 'sale':
            self.rental_price = None

    def set_prices(self, selling=None, rental=None, discounted=None):
        self.selling_price = parse_number(selling)
        self.rental_price = parse_number(rental)
        self.discounted_price = parse_number(discounted)

    def set_house_specifications(self, property_type, bedrooms, bathrooms, area):
        self.property_type = property_type
        self.bedrooms = parse_number(bedrooms)
        self.bathrooms = parse_number(bathrooms)
        self.area = parse_number(area)

    # === Images ===

    @property
    def image_count(self):
        return len(self.existing_images) + len(self.new_images)

    def image_error(self, image):
        """(title, message) explaining why `image` can't be queued, or None."""
        if image.size > MAX_IMAGE_SIZE:
            return ("File Too Large", f"{image.name} is larger than 5MB")
        if not (image.content_type or '').startswith('image/'):
            return ("Invalid File", f"{image.name} is not an image")
        return None

    def add_images(self, images):
        """
        Queue picked files. A pick that would go past the image limit is
        refused as a whole; otherwise each bad file is refused on its own.
        Returns the files that were queued.
        """
        images = list(images)
        if self.image_count + len(images) > MAX_IMAGES:
            self.notifier.error("Too Many Images", f"Maximum {MAX_IMAGES} images allowed")
            return []

        accepted = []
        for image in images:
            error = self.image_error(image)
            if error:
                self.notifier.error(*error)
                continue
            self.new_images.append(image)
            self.previews.append(image.preview())
            accepted.append(image)
        return accepted

    def remove_new_image(self, index):
        del self.new_images[index]
        del self.previews[index]

    def remove_existing_image(self, public_id):
        for image in self.existing_images:
            if image.get('publicId') == public_id:
                self.existing_images.remove(image)
                self.deleted_image_ids.append(public_id)
                return True
        return False

    # === Validation ===

    def validate(self):
        errors = {}

        for field, label, minimum, maximum in (
            ('title', 'Title', 5, 100),
            ('description', 'Description', 20, 1000),
            ('location', 'Location', 5, 200),
        ):
            error = _length_error(getattr(self, field), label, minimum, maximum)
            if error:
                errors[field] = error

        if self.type not in LISTING_TYPES:
            errors['type'] = "Listing type is required"

        if self.type == 'sale':
            if self.selling_price is None or self.selling_price <= 0:
                errors['sellingPrice'] = "Selling price is required for sale listings"
        if self.type == 'rent':
            if self.rental_price is None or self.rental_price <= 0:
                errors['rentalPrice'] = "Rental price is required for rent listings"

        if self.discounted_price is not None:
            if self.discounted_price < 0:
                errors['discountedPrice'] = "Discounted price cannot be negative"
            elif (self.type == 'sale' and self.discounted_price and self.selling_price
                    and self.discounted_price >= self.selling_price):
                errors['discountedPrice'] = "Discounted price must be less than selling price"

        if self.property_type not in PROPERTY_TYPES:
            errors['houseSpecifications.type'] = "Property type is required"
        for field, label, minimum, maximum, too_small, too_large in (
            ('bedrooms', 'Bedrooms', 0, 20, "Bedrooms must be 0 or more", "Maximum 20 bedrooms allowed"),
            ('bathrooms', 'Bathrooms', 0, 10, "Bathrooms must be 0 or more", "Maximum 10 bathrooms allowed"),
            ('area', 'Area', 1, 1000000, "Area must be greater than 0", "Area seems too large"),
        ):
            error = _range_error(getattr(self, field), label, minimum, maximum, too_small, too_large)
            if error:
                errors[f'houseSpecifications.{field}'] = error

        self.errors = errors
        return errors

    def is_valid(self):
        return not self.validate()

    # === Submission ===

    def build_payload(self):
        """
        (data, files) for one multipart request. Only the price that
        matches the type is sent; edits add the removed image ids.
        """
        if not self.is_valid():
            raise FormValidationError(self.errors)

        data = {
            'title': self.title.strip(),
            'description': self.description.strip(),
            'location': self.location.strip(),
            'type': self.type,
            'houseSpecifications': {
                'type': self.property_type,
                'bedrooms': self.bedrooms,
                'bathrooms': self.bathrooms,
                'area': self.area,
            },
        }
        if self.type == 'sale':
            data['sellingPrice'] = self.selling_price
            data['discountedPrice'] = self.discounted_price or 0
        else:
            data['rentalPrice'] = self.rental_price
        if self.is_edit:
            data['deletedImageIds'] = list(self.deleted_image_ids)

        files = [image.as_upload() for image in self.new_images]
        return data, files

    def submit(self):
        """Send the form. Returns the saved listing, or None after notifying."""
        try:
            user = self.session.require_user()
            data, files = self.build_payload()
        except NotSignedIn as e:
            self.notifier.error("Not Signed In", str(e))
            return None
        except FormValidationError as e:
            self.notifier.error("Invalid Listing", str(e))
            return None

        try:
            if self.is_edit:
                response = self.session.api.listings.update_listing(self.listing_id, data, files)
            else:
                response = self.session.api.listings.create_listing(user['id'], data, files)
        except ApiError as e:
            title = "Update Failed" if self.is_edit else "Creation Failed"
            self.notifier.error(title, e.message)
            return None

        listing = response["listing"]
        if self.is_edit:
            self.notifier.success("Listing Updated!", "Your property listing has been updated successfully")
            self.populate(listing)
        else:
            self.notifier.success("Listing Created!", "Your property listing has been created successfully")
        return listing
