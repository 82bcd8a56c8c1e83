"""
URL configuration for the Homestead marketplace project.

The `urlpatterns` list routes URLs to views.
"""

from django.contrib import admin
from django.urls import path, include
from django.http import HttpResponse


def home(request):
    return HttpResponse("Welcome to Homestead!")


urlpatterns = [
    # Root/Homepage
    path('', home, name='home'),

    # Admin Interface
    path('admin/', admin.site.urls),

    # Signup, signin, signout, Google sign-in
    path('api/auth/', include('accounts.auth_urls')),

    # Profile management and a user's own listings
    path('api/user/', include('accounts.urls')),

    path('api/listing/', include('listings.urls')),
]
