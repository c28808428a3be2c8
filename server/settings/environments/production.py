"""
This file contains all the settings used in production.

This file is required and if development.py is present these
values are overridden.
"""

from django.core.exceptions import ImproperlyConfigured

from server.settings.components.common import SECRET_KEY
from server.settings.components.share import SHARE_SIGNING_SALT

# Production flags:

DEBUG = False

if not SECRET_KEY:
    raise ImproperlyConfigured('DJANGO_SECRET_KEY must be set in production')

if not SHARE_SIGNING_SALT:
    raise ImproperlyConfigured('SHARE_SIGNING_SALT must be set in production')

SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
SECURE_REFERRER_POLICY = 'same-origin'
