# listings/urls.py

from django.urls import path
from . import views

urlpatterns = [
    path('search/', views.search_listings, name='listing-search'),
    path('<int:user_id>/create/', views.create_listing, name='listing-create'),
    path('<int:listing_id>/update/', views.update_listing, name='listing-update'),
    path('<int:listing_id>/delete/', views.delete_listing, name='listing-delete'),

    # Public endpoint (unauthenticated)
    path('<int:listing_id>/', views.listing_detail, name='listing-detail'),
]
