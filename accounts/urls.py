# accounts/urls.py
from django.urls import path
from listings import views as listing_views
from . import views

urlpatterns = [
    path('<int:user_id>/avatar/', views.update_avatar, name='user-avatar'),
    path('<int:user_id>/profile/', views.update_profile, name='user-profile'),
    path('<int:user_id>/change-password/', views.change_password, name='user-change-password'),
    path('<int:user_id>/delete/', views.delete_user, name='user-delete'),
    path('<int:user_id>/listings/', listing_views.user_listings, name='user-listings'),
    path('<int:pk>/', views.get_user, name='user-detail'),
]
