"""Data providers for reserve parameters and market rates."""

from reservecore.data.provider_factory import create_provider

__all__ = ["create_provider"]
