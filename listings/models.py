# listings/models.py
from django.db import models
from django.db.models import Case, DecimalField, F, When
from django.conf import settings

MAX_IMAGES = 4

# Listing type choices
LISTING_TYPE_CHOICES = [
    ('rent', 'Rent'),
    ('sale', 'Sale'),
]

# Property type choices
PROPERTY_TYPE_CHOICES = [
    ('apartment', 'Apartment'),
    ('house', 'House'),
    ('land', 'Land'),
    ('other', 'Other'),
]


class ListingQuerySet(models.QuerySet):
    def with_effective_price(self):
        """
        Annotate `effective_price`: the discounted price of a sale listing
        when one is set, otherwise its selling price; the rent for rentals.
        """
        return self.annotate(
            effective_price=Case(
                When(type='sale', discounted_price__gt=0, then=F('discounted_price')),
                When(type='sale', then=F('selling_price')),
                default=F('rental_price'),
                output_field=DecimalField(max_digits=14, decimal_places=2),
            )
        )


class Listing(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='listings',
    )

    title = models.CharField(max_length=100)
    description = models.TextField(max_length=1000)
    location = models.CharField(max_length=200)
    type = models.CharField(max_length=10, choices=LISTING_TYPE_CHOICES)

    # Exactly one of these is set, matching `type`
    selling_price = models.DecimalField(max_digits=14, decimal_places=2, blank=True, null=True)
    rental_price = models.DecimalField(max_digits=14, decimal_places=2, blank=True, null=True)
    discounted_price = models.DecimalField(max_digits=14, decimal_places=2, default=0)

    # House specifications
    property_type = models.CharField(max_length=20, choices=PROPERTY_TYPE_CHOICES)
    bedrooms = models.PositiveIntegerField(default=0)
    bathrooms = models.PositiveIntegerField(default=0)
    area = models.PositiveIntegerField(help_text="Square feet")

    # Ordered list of {"url": ..., "public_id": ...} Cloudinary assets
    images = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ListingQuerySet.as_manager()

    def save(self, *args, **kwargs):
        if self.type == 'sale':
            self.rental_price = None
        elif self.type == 'rent':
            self.selling_price = None
            self.discounted_price = 0
        if self.discounted_price is None:
            self.discounted_price = 0
        super().save(*args, **kwargs)

    @property
    def effective_price(self):
        if self.type == 'sale':
            if self.discounted_price and self.discounted_price > 0:
                return self.discounted_price
            return self.selling_price
        return self.rental_price

    @property
    def house_specifications(self):
        return {
            'type': self.property_type,
            'bedrooms': self.bedrooms,
            'bathrooms': self.bathrooms,
            'area': self.area,
        }

    def image_public_ids(self):
        return [image['public_id'] for image in self.images or [] if image.get('public_id')]

    def __str__(self):
        return f"{self.title} [{self.get_type_display()}]"

    class Meta:
        ordering = ['-created_at']
        verbose_name = "Listing"
        verbose_name_plural = "Listings"
