# listings/serializers.py

import json

from rest_framework import serializers
from .models import Listing, LISTING_TYPE_CHOICES, PROPERTY_TYPE_CHOICES

REQUIRED_MESSAGE = "All required fields must be provided"

SORT_CHOICES = [
    ('price-asc', 'Price: Low to High'),
    ('price-desc', 'Price: High to Low'),
    ('date-desc', 'Newest First'),
    ('date-asc', 'Oldest First'),
]
DEFAULT_SORT = 'date-desc'


class HouseSpecificationsSerializer(serializers.Serializer):
    type = serializers.ChoiceField(
        choices=PROPERTY_TYPE_CHOICES,
        error_messages={'required': "Property type is required"},
    )
    bedrooms = serializers.IntegerField(min_value=0, max_value=20)
    bathrooms = serializers.IntegerField(min_value=0, max_value=10)
    area = serializers.IntegerField(min_value=1, max_value=1000000)


class HouseSpecificationsField(serializers.Field):
    """
    Multipart forms send houseSpecifications as a JSON string, JSON bodies
    as an object. Either way it lands on the flat model columns.
    """

    def __init__(self, **kwargs):
        kwargs['source'] = '*'
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except ValueError:
                raise serializers.ValidationError("Invalid house specifications format")
        if not isinstance(data, dict):
            raise serializers.ValidationError("Invalid house specifications format")

        specs = HouseSpecificationsSerializer(data=data)
        if not specs.is_valid():
            raise serializers.ValidationError(specs.errors)

        values = specs.validated_data
        return {
            'property_type': values['type'],
            'bedrooms': values['bedrooms'],
            'bathrooms': values['bathrooms'],
            'area': values['area'],
        }

    def to_representation(self, instance):
        return instance.house_specifications


class ListingOwnerSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    username = serializers.CharField()
    fullname = serializers.CharField()
    avatar = serializers.DictField()


class ListingSerializer(serializers.ModelSerializer):
    """
    Wire format for listings: camelCase names over the model's snake_case
    columns. Validates the pricing rules on create and partial update.
    """
    title = serializers.CharField(
        max_length=100,
        error_messages={'required': REQUIRED_MESSAGE, 'blank': REQUIRED_MESSAGE},
    )
    description = serializers.CharField(
        max_length=1000,
        error_messages={'required': REQUIRED_MESSAGE, 'blank': REQUIRED_MESSAGE},
    )
    location = serializers.CharField(
        max_length=200,
        error_messages={'required': REQUIRED_MESSAGE, 'blank': REQUIRED_MESSAGE},
    )
    type = serializers.ChoiceField(
        choices=LISTING_TYPE_CHOICES,
        error_messages={
            'required': REQUIRED_MESSAGE,
            'invalid_choice': "Type must be either 'rent' or 'sale'",
        },
    )
    sellingPrice = serializers.DecimalField(
        source='selling_price', max_digits=14, decimal_places=2,
        required=False, allow_null=True,
    )
    rentalPrice = serializers.DecimalField(
        source='rental_price', max_digits=14, decimal_places=2,
        required=False, allow_null=True,
    )
    discountedPrice = serializers.DecimalField(
        source='discounted_price', max_digits=14, decimal_places=2,
        required=False, allow_null=True, min_value=0,
    )
    houseSpecifications = HouseSpecificationsField(
        error_messages={'required': REQUIRED_MESSAGE},
    )
    images = serializers.SerializerMethodField()
    userId = serializers.IntegerField(source='user_id', read_only=True)
    user = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Listing
        fields = [
            'id',
            'title',
            'description',
            'location',
            'type',
            'sellingPrice',
            'rentalPrice',
            'discountedPrice',
            'houseSpecifications',
            'images',
            'userId',
            'user',
            'createdAt',
            'updatedAt',
        ]

    def get_images(self, obj):
        return [
            {"url": image.get('url'), "publicId": image.get('public_id')}
            for image in obj.images or []
        ]

    def get_user(self, obj):
        owner = obj.user
        return ListingOwnerSerializer({
            'id': owner.id,
            'username': owner.username,
            'fullname': owner.fullname,
            'avatar': owner.avatar,
        }).data

    def validate(self, attrs):
        instance = self.instance

        def current(field):
            if field in attrs:
                return attrs[field]
            return getattr(instance, field) if instance is not None else None

        listing_type = current('type')
        selling_price = current('selling_price')
        rental_price = current('rental_price')
        discounted_price = current('discounted_price')

        if listing_type == 'sale':
            if not selling_price or selling_price <= 0:
                raise serializers.ValidationError({
                    'sellingPrice': "Valid selling price is required for sale listings"
                })
            if discounted_price and discounted_price >= selling_price:
                raise serializers.ValidationError({
                    'discountedPrice': "Discounted price must be less than selling price"
                })

        if listing_type == 'rent':
            if not rental_price or rental_price <= 0:
                raise serializers.ValidationError({
                    'rentalPrice': "Valid rental price is required for rent listings"
                })

        return attrs


class ListingSearchSerializer(serializers.Serializer):
    """Query parameters accepted by GET /api/listing/search/."""
    location = serializers.CharField(required=False, allow_blank=True)
    type = serializers.ChoiceField(choices=LISTING_TYPE_CHOICES, required=False, allow_blank=True)
    minPrice = serializers.FloatField(required=False, min_value=0)
    maxPrice = serializers.FloatField(required=False, min_value=0)
    bedrooms = serializers.IntegerField(required=False, min_value=0)
    bathrooms = serializers.IntegerField(required=False, min_value=0)
    propertyType = serializers.ChoiceField(choices=PROPERTY_TYPE_CHOICES, required=False, allow_blank=True)
    minArea = serializers.FloatField(required=False, min_value=0)
    maxArea = serializers.FloatField(required=False, min_value=0)
    sortBy = serializers.ChoiceField(choices=SORT_CHOICES, required=False, allow_blank=True)


def parse_deleted_image_ids(raw):
    """
    deletedImageIds arrives as a JSON array in multipart bodies, or as a
    real list in JSON bodies.
    """
    if raw in (None, ''):
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise serializers.ValidationError("Invalid deletedImageIds format")
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        raise serializers.ValidationError("Invalid deletedImageIds format")
    return raw
