# accounts/auth_urls.py
from django.urls import path
from . import views

urlpatterns = [
    path('signup/', views.signup, name='auth-signup'),
    path('signin/', views.signin, name='auth-signin'),
    path('signout/', views.signout, name='auth-signout'),
    path('google/', views.google_auth, name='auth-google'),
    path('wake-up/', views.wake_up, name='auth-wake-up'),
]
