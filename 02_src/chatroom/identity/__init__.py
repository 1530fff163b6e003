"""Identity module."""

from .gate import IIdentityGate, IdentityGate

__all__ = ["IIdentityGate", "IdentityGate"]
