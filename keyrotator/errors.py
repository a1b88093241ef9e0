"""
Error taxonomy for key rotation.

    KeyRotatorError
    ├── ConfigurationError      bad settings, fatal for a team run
    │   └── TemplateError       unresolvable path/title template
    └── UpstreamError           a GitHub or AWS call failed
        ├── NotFoundError       the addressed object does not exist
        └── RepoListError       the repository source could not be read

Backend adapters wrap library exceptions (botocore, httpx) in UpstreamError
so the rotation engine only ever has to reason about this hierarchy.
"""

from __future__ import annotations


class KeyRotatorError(Exception):
    """Base class for all errors raised by keyrotator."""


class ConfigurationError(KeyRotatorError):
    """Settings or templates that cannot produce a valid run."""


class TemplateError(ConfigurationError):
    """A template references an unknown field or has invalid syntax."""


class UpstreamError(KeyRotatorError):
    """A call to an external service failed."""


class NotFoundError(UpstreamError):
    """The requested secret (or other object) does not exist."""


class RepoListError(UpstreamError):
    """The repository source could not be listed."""
