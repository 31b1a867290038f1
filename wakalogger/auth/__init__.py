"""Auth module - secure storage for API credentials."""

from .keychain import KeychainManager

__all__ = ["KeychainManager"]
