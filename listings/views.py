# listings/views.py

import logging

from django.db import DatabaseError
from django.shortcuts import get_object_or_404
from rest_framework.decorators import (
    api_view, authentication_classes, permission_classes, parser_classes,
)
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from rest_framework.response import Response
from rest_framework import serializers, status

from accounts.authentication import IsPathOwner
from config.errors import error_response, first_error_message
from .models import Listing
from .serializers import (
    DEFAULT_SORT, ListingSearchSerializer, ListingSerializer, parse_deleted_image_ids,
)
from .utils import (
    ImageUploadError, check_image_files, destroy_images, upload_listing_images,
)

logger = logging.getLogger(__name__)

SORT_ORDERINGS = {
    'price-asc': ('effective_price', 'id'),
    'price-desc': ('-effective_price', 'id'),
    'date-desc': ('-created_at', '-id'),
    'date-asc': ('created_at', 'id'),
}


def _invalid(serializer):
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        first_error_message(serializer.errors),
        errors=serializer.errors,
    )


def _save_listing(serializer, uploaded, **kwargs):
    """Save the listing; images uploaded for it are destroyed again if that fails."""
    try:
        return serializer.save(**kwargs)
    except DatabaseError:
        logger.exception("Saving listing failed, removing its new uploads")
        destroy_images([image["public_id"] for image in uploaded], ignore_errors=True)
        return None


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def search_listings(request):
    """
    API Endpoint: GET /api/listing/search/
    Every SearchFilters field is honoured; price bounds apply to the
    effective price (discounted sale price when set).
    """
    params = ListingSearchSerializer(data=request.query_params)
    if not params.is_valid():
        return _invalid(params)
    filters = params.validated_data

    queryset = Listing.objects.select_related('user').with_effective_price()

    location = (filters.get('location') or '').strip()
    if location:
        queryset = queryset.filter(location__icontains=location)
    if filters.get('type'):
        queryset = queryset.filter(type=filters['type'])
    if filters.get('minPrice') is not None:
        queryset = queryset.filter(effective_price__gte=filters['minPrice'])
    if filters.get('maxPrice') is not None:
        queryset = queryset.filter(effective_price__lte=filters['maxPrice'])
    if filters.get('bedrooms') is not None:
        queryset = queryset.filter(bedrooms__gte=filters['bedrooms'])
    if filters.get('bathrooms') is not None:
        queryset = queryset.filter(bathrooms__gte=filters['bathrooms'])
    if filters.get('propertyType'):
        queryset = queryset.filter(property_type=filters['propertyType'])
    if filters.get('minArea') is not None:
        queryset = queryset.filter(area__gte=filters['minArea'])
    if filters.get('maxArea') is not None:
        queryset = queryset.filter(area__lte=filters['maxArea'])

    sort_by = filters.get('sortBy') or DEFAULT_SORT
    queryset = queryset.order_by(*SORT_ORDERINGS[sort_by])

    serializer = ListingSerializer(queryset, many=True)
    return Response(serializer.data, status=status.HTTP_200_OK)


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def listing_detail(request, listing_id):
    try:
        listing = Listing.objects.select_related('user').get(id=listing_id)
    except Listing.DoesNotExist:
        return error_response(status.HTTP_404_NOT_FOUND, "Listing not found")

    return Response(ListingSerializer(listing).data, status=status.HTTP_200_OK)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPathOwner])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def create_listing(request, user_id):
    """
    API Endpoint: POST /api/listing/<user_id>/create/
    Multipart: text fields, houseSpecifications as JSON, up to 4 `images`.
    """
    serializer = ListingSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    files = request.FILES.getlist('images')
    error = check_image_files(files)
    if error:
        return error_response(status.HTTP_400_BAD_REQUEST, error)

    try:
        images = upload_listing_images(files, request.user.id, serializer.validated_data['title'])
    except ImageUploadError as e:
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))

    listing = _save_listing(serializer, images, user=request.user, images=images)
    if listing is None:
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to save listing")
    logger.info(f"Listing created: id={listing.id}, user={request.user.id}, images={len(images)}")

    return Response({
        "message": "Listing created successfully",
        "listing": ListingSerializer(listing).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def update_listing(request, listing_id):
    """
    API Endpoint: PUT /api/listing/<listing_id>/update/
    Fields are optional. New `images` are appended; existing images are
    only removed when their public ids are listed in `deletedImageIds`.
    """
    listing = get_object_or_404(Listing.objects.select_related('user'), id=listing_id)
    if listing.user_id != request.user.id:
        return error_response(status.HTTP_403_FORBIDDEN, "You can only update your own listings")

    serializer = ListingSerializer(listing, data=request.data, partial=True)
    if not serializer.is_valid():
        return _invalid(serializer)

    try:
        deleted_ids = parse_deleted_image_ids(request.data.get('deletedImageIds'))
    except serializers.ValidationError as e:
        return error_response(status.HTTP_400_BAD_REQUEST, first_error_message(e.detail))

    unknown = set(deleted_ids) - set(listing.image_public_ids())
    if unknown:
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            f"Unknown image id(s): {', '.join(sorted(unknown))}",
        )

    kept = [image for image in listing.images if image.get('public_id') not in deleted_ids]
    files = request.FILES.getlist('images')
    error = check_image_files(files, existing_count=len(kept))
    if error:
        return error_response(status.HTTP_400_BAD_REQUEST, error)

    title = serializer.validated_data.get('title', listing.title)
    try:
        added = upload_listing_images(files, request.user.id, title) if files else []
    except ImageUploadError as e:
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))

    listing = _save_listing(serializer, added, images=kept + added)
    if listing is None:
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to save listing")

    if deleted_ids:
        destroy_images(deleted_ids, ignore_errors=True)
    logger.info(
        f"Listing updated: id={listing.id}, added={len(added)}, removed={len(deleted_ids)}"
    )

    return Response({
        "message": "Listing updated successfully",
        "listing": ListingSerializer(listing).data,
    }, status=status.HTTP_200_OK)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def delete_listing(request, listing_id):
    listing = get_object_or_404(Listing, id=listing_id)
    if listing.user_id != request.user.id:
        return error_response(status.HTTP_403_FORBIDDEN, "You can only delete your own listings")

    try:
        destroy_images(listing.image_public_ids())
    except Exception:
        logger.exception(f"Cloudinary cleanup failed for listing id={listing.id}")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to delete listing images")

    listing.delete()
    return Response({"message": "Listing deleted successfully"}, status=status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPathOwner])
def user_listings(request, user_id):
    """API Endpoint: GET /api/user/<user_id>/listings/ (newest first)"""
    queryset = Listing.objects.select_related('user').filter(user=request.user).order_by('-created_at')
    if not queryset.exists():
        return error_response(status.HTTP_404_NOT_FOUND, "No listings found for this user")

    return Response(ListingSerializer(queryset, many=True).data, status=status.HTTP_200_OK)
