"""Tests for GCS progress document helpers."""

import json
import sys
from unittest.mock import MagicMock, patch

from services.gcs import download_json, progress_blob_name, upload_json


def _mock_storage(blob: MagicMock) -> tuple[MagicMock, MagicMock, MagicMock]:
    mock_bucket = MagicMock()
    mock_bucket.blob.return_value = blob

    mock_client = MagicMock()
    mock_client.bucket.return_value = mock_bucket

    mock_storage = MagicMock()
    mock_storage.Client.return_value = mock_client
    # Satisfy "from google.cloud import storage" without real credentials
    mock_cloud = MagicMock()
    mock_cloud.storage = mock_storage
    return mock_cloud, mock_storage, mock_client


def _patched_modules(mock_cloud: MagicMock, mock_storage: MagicMock):
    return patch.dict(
        sys.modules,
        {"google": MagicMock(), "google.cloud": mock_cloud, "google.cloud.storage": mock_storage},
    )


def test_progress_blob_name() -> None:
    assert progress_blob_name("user-1", "lecture-101") == "progress/user-1/lecture-101.json"


def test_progress_blob_name_escapes_slashes() -> None:
    assert progress_blob_name("alice/x", "y") == "progress/alice%2Fx/y.json"
    assert progress_blob_name("alice/x", "y") != progress_blob_name("alice", "x/y")


def test_upload_json_writes_to_bucket_object() -> None:
    mock_blob = MagicMock()
    mock_cloud, mock_storage, mock_client = _mock_storage(mock_blob)

    with _patched_modules(mock_cloud, mock_storage):
        upload_json("progress/u/m.json", {"lastPosition": 3.0}, bucket_name="progress-bucket")

    mock_client.bucket.assert_called_once_with("progress-bucket")
    mock_client.bucket.return_value.blob.assert_called_once_with("progress/u/m.json")
    args, kwargs = mock_blob.upload_from_string.call_args
    assert json.loads(args[0]) == {"lastPosition": 3.0}
    assert kwargs["content_type"] == "application/json"


def test_download_json_decodes_existing_object() -> None:
    mock_blob = MagicMock()
    mock_blob.exists.return_value = True
    mock_blob.download_as_text.return_value = '{"intervals": [], "lastPosition": 12.5}'
    mock_cloud, mock_storage, _ = _mock_storage(mock_blob)

    with _patched_modules(mock_cloud, mock_storage):
        doc = download_json("progress/u/m.json", bucket_name="progress-bucket")

    assert doc == {"intervals": [], "lastPosition": 12.5}


def test_download_json_missing_object_returns_none() -> None:
    mock_blob = MagicMock()
    mock_blob.exists.return_value = False
    mock_cloud, mock_storage, _ = _mock_storage(mock_blob)

    with _patched_modules(mock_cloud, mock_storage):
        assert download_json("progress/u/m.json") is None
    mock_blob.download_as_text.assert_not_called()


def test_default_bucket_comes_from_env() -> None:
    mock_blob = MagicMock()
    mock_cloud, mock_storage, mock_client = _mock_storage(mock_blob)

    with (
        _patched_modules(mock_cloud, mock_storage),
        patch.dict("os.environ", {"GCS_BUCKET": "env-bucket"}, clear=False),
    ):
        upload_json("progress/u/m.json", {})

    mock_client.bucket.assert_called_once_with("env-bucket")
