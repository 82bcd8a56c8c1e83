from django.contrib import admin
from django.contrib.auth import get_user_model

User = get_user_model()


@admin.register(User)
class CustomUserAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "username",
        "fullname",
        "email",
        "is_staff",
        "is_active",
        "date_joined",
    )
    search_fields = ("username", "fullname", "email")
    list_filter = ("is_staff", "is_active", "date_joined")
    readonly_fields = ("avatar_public_id", "date_joined", "updated_at")
    ordering = ("-date_joined",)
