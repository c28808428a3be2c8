"""Share server settings: upload limits, credentials, expiry, serving."""

from server.settings.components import config

# Upload admission
SHARE_MAX_UPLOAD_BYTES = config(
    'SHARE_MAX_UPLOAD_BYTES',
    cast=int,
    default=100 * 1024 * 1024,
)

# Request signing
SHARE_SIGNING_SALT = config('SHARE_SIGNING_SALT', default='')

# Optional deployment-wide key required on every mutating request
SHARE_UPLOAD_KEY = config('SHARE_UPLOAD_KEY', default='')

# Expiration, in seconds. Empty means "no default" / "no cap".
SHARE_DEFAULT_TTL = config(
    'SHARE_DEFAULT_TTL',
    cast=lambda raw: int(raw) if raw else None,
    default='',
)
SHARE_MAX_TTL = config(
    'SHARE_MAX_TTL',
    cast=lambda raw: int(raw) if raw else None,
    default='',
)
SHARE_SWEEP_INTERVAL = config('SHARE_SWEEP_INTERVAL', cast=int, default=300)

# Cloudflare cache purge, enabled when both are set
SHARE_CLOUDFLARE_ZONE_ID = config('SHARE_CLOUDFLARE_ZONE_ID', default='')
SHARE_CLOUDFLARE_API_TOKEN = config('SHARE_CLOUDFLARE_API_TOKEN', default='')

# HTTP server bind address
SHARE_HOST = config('SHARE_HOST', default='0.0.0.0')  # noqa: S104
SHARE_PORT = config('SHARE_PORT', cast=int, default=8000)
