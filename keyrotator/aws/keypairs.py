"""
Key pair generation through EC2.

EC2 generates the RSA key and returns the private half once; the public half
is derived locally in OpenSSH format. The EC2 key pair itself is only a
vehicle and is deleted straight away. A failed delete is logged and never
raised: the generated key is still usable, and the leftover EC2 key pair
blocks nothing but a future request under the same title.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from cryptography.hazmat.primitives import serialization

from keyrotator.errors import UpstreamError
from keyrotator.models import KeyPair

logger = logging.getLogger(__name__)

# Clients live as long as a warm Lambda container
MAX_CLEANUP_FAILURES = 100


def public_key_from_pem(private_pem: str) -> str:
    """Derive an OpenSSH ``ssh-rsa ...`` public key from a PEM private key."""
    try:
        key = serialization.load_pem_private_key(private_pem.encode("utf-8"), password=None)
    except (ValueError, TypeError) as e:
        raise UpstreamError(f"failed to decode private key: {e}") from e
    public = key.public_key().public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH,
    )
    return public.decode("utf-8")


class KeyPairProvider:
    """Generate SSH key pairs with EC2 CreateKeyPair."""

    def __init__(self, client: Any = None, *, region: str = "") -> None:
        if client is None:
            import boto3

            client = boto3.client("ec2", region_name=region or None)
        self._client = client
        # Titles whose temporary EC2 key pair may still exist, oldest first
        self.cleanup_failures: deque[str] = deque(maxlen=MAX_CLEANUP_FAILURES)

    def generate_key_pair(self, title: str) -> KeyPair:
        try:
            res = self._client.create_key_pair(KeyName=title)
        except (ClientError, BotoCoreError) as e:
            raise UpstreamError(f"creating EC2 key pair {title}: {e}") from e

        try:
            private_pem = res.get("KeyMaterial") or ""
            if not private_pem:
                raise UpstreamError(f"EC2 returned no key material for {title}")
            return KeyPair(private_material=private_pem, public_material=public_key_from_pem(private_pem))
        finally:
            self._cleanup(title)

    def _cleanup(self, title: str) -> None:
        try:
            self._client.delete_key_pair(KeyName=title)
        except (ClientError, BotoCoreError) as e:
            if title not in self.cleanup_failures:
                self.cleanup_failures.append(title)
            logger.warning("Failed to delete temporary EC2 key pair %s: %s", title, e)
            return
        if title in self.cleanup_failures:
            self.cleanup_failures.remove(title)
