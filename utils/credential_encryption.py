"""
Credential Encryption/Decryption Utilities
Courier API credentials are stored AES-256-CBC encrypted in the partner config
"""

import os
import base64
import hashlib
import json
import secrets
from typing import Dict, Any, Union

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives import padding

import config

from logger import logger
from utils.exception_handler import ConfigurationError


ENCRYPTION_KEY = config.CREDENTIAL_ENCRYPTION_KEY

if not ENCRYPTION_KEY:
    # development only, credentials will not survive a restart
    ENCRYPTION_KEY = base64.b64encode(secrets.token_bytes(32)).decode("utf-8")
    logger.warning(
        "Using auto-generated credential encryption key. Set CREDENTIAL_ENCRYPTION_KEY in production!"
    )


def _get_encryption_key() -> bytes:
    """Get the encryption key as 32 bytes"""
    try:
        key = base64.b64decode(ENCRYPTION_KEY, validate=True)
        if len(key) == 32:
            return key
    except ValueError:
        pass
    # not a base64 32-byte key, derive one
    return hashlib.sha256(ENCRYPTION_KEY.encode("utf-8")).digest()


def encrypt_credentials(credentials: Dict[str, Any]) -> str:
    """
    Encrypt credentials dictionary using AES-256-CBC

    Args:
        credentials: Dictionary containing courier API credentials

    Returns:
        Base64 encoded IV + ciphertext
    """
    credentials_json = json.dumps(credentials, sort_keys=True)

    iv = os.urandom(16)
    cipher = Cipher(algorithms.AES(_get_encryption_key()), modes.CBC(iv))

    padder = padding.PKCS7(128).padder()
    padded_data = padder.update(credentials_json.encode("utf-8")) + padder.finalize()

    encryptor = cipher.encryptor()
    encrypted_data = encryptor.update(padded_data) + encryptor.finalize()

    return base64.b64encode(iv + encrypted_data).decode("utf-8")


def decrypt_credentials(encrypted: Union[str, Dict[str, Any], None]) -> Dict[str, Any]:
    """
    Decrypt credentials from encrypted string.

    Plain dictionaries are passed through untouched so fixtures and
    unencrypted legacy rows keep working.
    """
    if encrypted is None:
        return {}
    if isinstance(encrypted, dict):
        return dict(encrypted)

    try:
        combined = base64.b64decode(encrypted)
        iv = combined[:16]
        encrypted_data = combined[16:]

        cipher = Cipher(algorithms.AES(_get_encryption_key()), modes.CBC(iv))
        decryptor = cipher.decryptor()
        padded_data = decryptor.update(encrypted_data) + decryptor.finalize()

        unpadder = padding.PKCS7(128).unpadder()
        credentials_json = unpadder.update(padded_data) + unpadder.finalize()

        return json.loads(credentials_json.decode("utf-8"))

    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"Failed to decrypt courier credentials: {str(e)}")


def generate_encryption_key() -> str:
    """
    Generate a new random encryption key
    Use this to generate CREDENTIAL_ENCRYPTION_KEY for production
    """
    return base64.b64encode(secrets.token_bytes(32)).decode("utf-8")


if __name__ == "__main__":
    print("Generated Encryption Key (save this as CREDENTIAL_ENCRYPTION_KEY):")
    print(generate_encryption_key())
