from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models

DEFAULT_AVATAR_URL = (
    "https://cdn.pixabay.com/photo/2015/10/05/22/37/"
    "blank-profile-picture-973460_1280.png"
)


class UserManager(BaseUserManager):
    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('The Email field must be set')
        if not extra_fields.get('username'):
            raise ValueError('The Username field must be set')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class User(AbstractUser):
    username = models.CharField(max_length=150, unique=True)
    email = models.EmailField(unique=True)
    fullname = models.CharField(max_length=150)

    # Cloudinary avatar; public id is null until the user uploads one
    avatar_url = models.URLField(max_length=500, default=DEFAULT_AVATAR_URL)
    avatar_public_id = models.CharField(max_length=255, blank=True, null=True)

    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username', 'fullname']

    objects = UserManager()

    def __str__(self):
        return self.email

    @property
    def avatar(self):
        return {"url": self.avatar_url, "publicId": self.avatar_public_id}

    def set_avatar(self, url, public_id):
        self.avatar_url = url
        self.avatar_public_id = public_id
        self.save(update_fields=['avatar_url', 'avatar_public_id', 'updated_at'])
