"""AWS-backed secret storage and key pair generation."""

from keyrotator.aws.keypairs import KeyPairProvider
from keyrotator.aws.secrets import SecretStore

__all__ = ["KeyPairProvider", "SecretStore"]
