"""
Django settings for Buildman tests.
"""

from pathlib import Path

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"

SECRET_KEY = "test-secret-key-for-buildman-tests"

DEBUG = True

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "simple_history",
    "rest_framework",
    "buildman",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = "America/Chicago"

BUILDMAN = {
    "CATALOG_ASSEMBLIES_PATH": FIXTURES_DIR / "assemblies.json",
    "CATALOG_PARTS_PATH": FIXTURES_DIR / "parts.json",
}
