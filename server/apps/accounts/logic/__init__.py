"""Business logic layer for accounts app.

- Request signing primitives shared with clients
- Credential verification, provisioning and key rotation
"""
