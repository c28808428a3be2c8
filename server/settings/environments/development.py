"""
This file contains all the settings that defines the development server.

SECURITY WARNING: don't run with debug turned on in production!
"""

from server.settings.components.common import ALLOWED_HOSTS, SECRET_KEY
from server.settings.components.share import SHARE_SIGNING_SALT

# Setting the development status:

DEBUG = True

ALLOWED_HOSTS = [
    *ALLOWED_HOSTS,
    '[::1]',
    'testserver',
]

if not SECRET_KEY:
    SECRET_KEY = 'development-only-secret-key'  # noqa: S105

if not SHARE_SIGNING_SALT:
    SHARE_SIGNING_SALT = 'development-only-signing-salt'  # noqa: S105
