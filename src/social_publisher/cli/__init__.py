"""Command-line interface.

Commands are grouped by feature:
- platform/: registry listing, capability records, content validation
- oauth/: authorization URLs, state checks, key generation

Usage:
    social-publisher platforms
    social-publisher limits instagram
    social-publisher validate twitter --caption "Hello" --hashtag news
    social-publisher auth-url tiktok user-123
"""

from .app import app, main

__all__ = ["app", "main"]
