"""
Root-level shared test fixtures.

Provides an in-memory CredentialBackend that records every call in order,
a controllable clock, and an engine wired to both, so rotation tests never
touch GitHub, AWS or real time.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from keyrotator.config import reset_config
from keyrotator.errors import NotFoundError
from keyrotator.models import DeployKey, KeyPair
from keyrotator.rotation.engine import RotationEngine

MUTATING = {"create_key", "delete_key", "write_secret", "generate_key_pair", "create_installation_token"}


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class FakeBackend:
    """In-memory GitHub + Secrets Manager + EC2."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.keys: dict[str, list[DeployKey]] = {}
        self.secrets: dict[str, tuple[str, datetime | None]] = {}
        self.calls: list[tuple] = []
        self.fail: dict[str, Exception] = {}
        self._next_id = 100

    def _record(self, op: str, *args) -> None:
        self.calls.append((op, *args))
        if op in self.fail:
            raise self.fail[op]

    def ops(self) -> list[str]:
        return [c[0] for c in self.calls]

    def mutations(self) -> list[tuple]:
        return [c for c in self.calls if c[0] in MUTATING]

    def add_key(self, repo: str, title: str, read_only: bool | None = False) -> DeployKey:
        self._next_id += 1
        key = DeployKey(id=self._next_id, title=title, read_only=read_only)
        self.keys.setdefault(repo, []).append(key)
        return key

    def create_installation_token(self, owner: str) -> str:
        self._record("create_installation_token", owner)
        return f"ghs_{owner}_token"

    def list_keys(self, owner: str, repo: str) -> list[DeployKey]:
        self._record("list_keys", owner, repo)
        return list(self.keys.get(repo, []))

    def create_key(self, owner: str, repo: str, title: str, public_key: str, read_only: bool) -> None:
        self._record("create_key", owner, repo, title, public_key, read_only)
        self.add_key(repo, title, read_only)

    def delete_key(self, owner: str, repo: str, key_id: int) -> None:
        self._record("delete_key", owner, repo, key_id)
        self.keys[repo] = [k for k in self.keys.get(repo, []) if k.id != key_id]

    def write_secret(self, path: str, value: str) -> None:
        self._record("write_secret", path, value)
        self.secrets[path] = (value, self.clock.now())

    def read_last_updated(self, path: str) -> datetime | None:
        self._record("read_last_updated", path)
        if path not in self.secrets:
            raise NotFoundError(f"secret {path} does not exist")
        return self.secrets[path][1]

    def generate_key_pair(self, title: str) -> KeyPair:
        self._record("generate_key_pair", title)
        n = len([c for c in self.calls if c[0] == "generate_key_pair"])
        return KeyPair(private_material=f"PRIVATE-{title}-{n}", public_material=f"ssh-rsa PUBLIC-{title}-{n}")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def backend(clock: FakeClock) -> FakeBackend:
    return FakeBackend(clock)


@pytest.fixture
def sleeps() -> list[float]:
    """Grace waits requested by the engine (also appended to backend.calls)."""
    return []


@pytest.fixture
def engine(backend: FakeBackend, clock: FakeClock, sleeps: list[float]) -> RotationEngine:
    def sleep(seconds: float) -> None:
        sleeps.append(seconds)
        backend.calls.append(("sleep", seconds))

    return RotationEngine(backend, owner="acme", sleep=sleep, now=clock.now)


@pytest.fixture(scope="session")
def rsa_key():
    from cryptography.hazmat.primitives.asymmetric import rsa

    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_key) -> str:
    """PKCS#1 PEM, the format EC2 returns and GitHub issues app keys in."""
    from cryptography.hazmat.primitives import serialization

    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture(autouse=True)
def clean_config():
    """Reset the config singleton between tests."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove keyrotator env vars that leak between tests."""
    import os

    for key in list(os.environ):
        if key.startswith("KEYROTATOR_"):
            monkeypatch.delenv(key, raising=False)
