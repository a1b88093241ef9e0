"""Tests for the Secrets Manager store."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from keyrotator.aws.secrets import SecretStore, format_description, parse_description
from keyrotator.errors import NotFoundError, UpstreamError

NOW = datetime(2024, 5, 1, 12, 30, 45, tzinfo=UTC)


def _client_error(code: str, op: str = "Op") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, op)


@pytest.fixture
def sm():
    return MagicMock()


@pytest.fixture
def store(sm):
    return SecretStore(sm, now=lambda: NOW)


class TestDescription:
    def test_format(self):
        assert format_description(NOW) == "Github credentials for Concourse. Last updated: 2024-05-01T12:30:45Z"

    def test_roundtrip(self):
        assert parse_description(format_description(NOW)) == NOW

    def test_parses_legacy_text_around_timestamp(self):
        assert parse_description("rotated by lambda 2023-01-02T03:04:05Z (ok)") == datetime(
            2023, 1, 2, 3, 4, 5, tzinfo=UTC
        )

    @pytest.mark.parametrize("desc", [None, "", "no timestamp here", "Last updated: 2024-13-45T99:00:00Z"])
    def test_absent_or_unparsable(self, desc):
        assert parse_description(desc) is None


class TestWriteSecret:
    def test_creates_then_updates(self, store, sm):
        store.write_secret("/concourse/platform/svc-a-deploy-key", "PRIVATE")
        sm.create_secret.assert_called_once_with(
            Name="/concourse/platform/svc-a-deploy-key",
            Description=format_description(NOW),
        )
        sm.update_secret.assert_called_once_with(
            SecretId="/concourse/platform/svc-a-deploy-key",
            Description=format_description(NOW),
            SecretString="PRIVATE",
        )

    def test_existing_secret_is_updated(self, store, sm):
        sm.create_secret.side_effect = _client_error("ResourceExistsException", "CreateSecret")
        store.write_secret("p", "v")
        sm.update_secret.assert_called_once()

    def test_create_failure(self, store, sm):
        sm.create_secret.side_effect = _client_error("AccessDeniedException", "CreateSecret")
        with pytest.raises(UpstreamError, match="creating secret p"):
            store.write_secret("p", "v")
        sm.update_secret.assert_not_called()

    def test_update_failure(self, store, sm):
        sm.update_secret.side_effect = _client_error("InternalServiceError", "UpdateSecret")
        with pytest.raises(UpstreamError, match="updating secret p"):
            store.write_secret("p", "v")

    def test_connection_failure(self, store, sm):
        sm.create_secret.side_effect = EndpointConnectionError(endpoint_url="https://secretsmanager")
        with pytest.raises(UpstreamError):
            store.write_secret("p", "v")


class TestReadLastUpdated:
    def test_reads_timestamp_from_description(self, store, sm):
        sm.describe_secret.return_value = {
            "Name": "p",
            "Description": format_description(NOW),
            "LastChangedDate": datetime(2030, 1, 1, tzinfo=UTC),
        }
        assert store.read_last_updated("p") == NOW

    def test_not_found(self, store, sm):
        sm.describe_secret.side_effect = _client_error("ResourceNotFoundException", "DescribeSecret")
        with pytest.raises(NotFoundError):
            store.read_last_updated("p")

    def test_other_error(self, store, sm):
        sm.describe_secret.side_effect = _client_error("ThrottlingException", "DescribeSecret")
        with pytest.raises(UpstreamError) as exc:
            store.read_last_updated("p")
        assert not isinstance(exc.value, NotFoundError)

    def test_missing_description(self, store, sm):
        sm.describe_secret.return_value = {"Name": "p"}
        assert store.read_last_updated("p") is None

    def test_write_then_read_is_symmetric(self, store, sm):
        store.write_secret("p", "v")
        description = sm.update_secret.call_args.kwargs["Description"]
        sm.describe_secret.return_value = {"Description": description}
        assert store.read_last_updated("p") == NOW
