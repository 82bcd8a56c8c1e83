# accounts/utils.py

import random
import string
import time

from django.contrib.auth import get_user_model

USERNAME_ATTEMPTS = 10
_ALPHABET = string.ascii_lowercase + string.digits


def _suffix(length):
    return ''.join(random.choices(_ALPHABET, k=length))


def generate_unique_username(name):
    """
    Build a username from a display name plus a short random suffix.
    Retries with a longer suffix, then falls back to a timestamp.
    """
    User = get_user_model()
    base = ''.join((name or 'user').split()).lower()

    username = base + _suffix(4)
    for _ in range(USERNAME_ATTEMPTS):
        if not User.objects.filter(username=username).exists():
            return username
        username = base + _suffix(6)

    return base + str(int(time.time() * 1000))[-6:]


def generate_password(length=16):
    return ''.join(random.SystemRandom().choices(_ALPHABET, k=length))
