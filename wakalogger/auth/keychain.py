"""Secure credential storage using system keychain."""

import json
import logging
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from ..config import Credentials

__all__ = ["KeychainManager"]

logger = logging.getLogger(__name__)

SERVICE_NAME = "WakaLogger"
ACCOUNT_NAME = "api_credentials"


class KeychainManager:
    """Keeps the WakaTime and GitHub credentials in the system keychain."""

    def __init__(self, service_name: str = SERVICE_NAME):
        self.service_name = service_name

    def store(self, credentials: Credentials) -> bool:
        """Store credentials in keychain.

        Returns:
            True if stored successfully
        """
        try:
            keyring.set_password(
                self.service_name, ACCOUNT_NAME, json.dumps(credentials.to_dict())
            )
            logger.info(f"Credentials stored for {credentials.wakatime_username}")
            return True
        except KeyringError as e:
            logger.error(f"Failed to store credentials: {e}")
            return False

    def load(self) -> Optional[Credentials]:
        """Load credentials from keychain.

        Returns:
            Credentials if found, None otherwise
        """
        try:
            data = keyring.get_password(self.service_name, ACCOUNT_NAME)
            if data:
                return Credentials.from_dict(json.loads(data))
            return None
        except KeyringError as e:
            logger.error(f"Failed to load credentials: {e}")
            return None
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            logger.error(f"Invalid credential format: {e}")
            return None

    def delete(self) -> bool:
        """Delete stored credentials.

        Returns:
            True if deleted (or didn't exist)
        """
        try:
            keyring.delete_password(self.service_name, ACCOUNT_NAME)
            logger.info("Credentials deleted")
            return True
        except PasswordDeleteError:
            return True
        except KeyringError as e:
            logger.error(f"Failed to delete credentials: {e}")
            return False
