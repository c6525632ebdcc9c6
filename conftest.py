import pytest


@pytest.fixture(autouse=True)
def _test_settings(settings):
    # Audit failures are logged, not raised, unless a test opts in.
    settings.CYCLE_AUDIT_STRICT = False

    # Fast hashing for the many users the fixtures create
    settings.PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

    # Keep security redirects and secure cookies out of the test client
    settings.SECURE_SSL_REDIRECT = False
    settings.SESSION_COOKIE_SECURE = False
    settings.CSRF_COOKIE_SECURE = False
