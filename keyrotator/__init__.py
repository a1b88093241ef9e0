"""
keyrotator: rotates GitHub deploy keys and organisation access tokens.

Generated private keys and tokens are written to AWS Secrets Manager; keys
they supersede are revoked once the replacement is in place.
"""

__version__ = "0.1.0"
