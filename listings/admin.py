# listings/admin.py

from django.contrib import admin
from django.utils.html import format_html
from .models import Listing


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):

    def owner_name(self, obj):
        user = obj.user
        return f"{user.fullname or user.username} ({user.email})"
    owner_name.short_description = "Owner"
    owner_name.admin_order_field = 'user__username'

    def price(self, obj):
        value = obj.effective_price
        return f"₹{value:,.0f}" if value is not None else "—"
    price.short_description = "Price"

    def image_thumbnail(self, obj):
        images = obj.images
        if not images:
            return "❌ No"
        return format_html(
            '<img src="{}" style="width: 80px; height: 60px; object-fit: cover; border-radius: 4px;" />',
            images[0].get('url')
        )
    image_thumbnail.short_description = "Image"

    list_display = (
        'title',
        'owner_name',
        'type',
        'price',
        'property_type',
        'location',
        'image_thumbnail',
        'created_at',
    )
    list_filter = ('type', 'property_type', 'created_at')
    search_fields = ('title', 'location', 'user__username', 'user__email')
    readonly_fields = ('created_at', 'updated_at')
    fieldsets = (
        ("Basic Information", {
            "fields": ("title", "user", "type", "description", "location")
        }),
        ("Pricing", {
            "fields": ("selling_price", "rental_price", "discounted_price")
        }),
        ("House Specifications", {
            "fields": ("property_type", "bedrooms", "bathrooms", "area")
        }),
        ("Images", {
            "fields": ("images",),
            "classes": ("collapse",)
        }),
        ("Metadata", {
            "fields": ("created_at", "updated_at"),
            "classes": ("collapse",)
        }),
    )
