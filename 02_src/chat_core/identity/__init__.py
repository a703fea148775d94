"""Identity module."""

from .identity import IIdentityService, StaticIdentity

__all__ = ["IIdentityService", "StaticIdentity"]
