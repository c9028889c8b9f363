"""OAuth helpers used by the REST client."""

from .oauth import OAuthClient, Token  # noqa: F401

__all__ = ["OAuthClient", "Token"]
