"""GCS client helpers for progress documents."""

import json
from typing import Any
from urllib.parse import quote

from services.config import get_bucket_name

PROGRESS_PREFIX = "progress"


def progress_blob_name(user_scope: str, media_id: str) -> str:
    """Object path for one viewer's progress on one media item."""
    return f"{PROGRESS_PREFIX}/{quote(user_scope, safe='')}/{quote(media_id, safe='')}.json"


def download_json(
    blob_name: str,
    *,
    bucket_name: str | None = None,
) -> Any | None:
    """
    Download and decode a JSON object from GCS.

    :param blob_name: Object path in bucket, e.g. "progress/u1/lecture-101.json"
    :param bucket_name: GCS bucket; default from GCS_BUCKET env or "watch-progress"
    :return: Decoded JSON, or None if the object does not exist
    :raises ValueError: if the object exists but is not valid JSON
    """
    from google.cloud import storage

    bucket_name = bucket_name or get_bucket_name()
    client = storage.Client()
    bucket = client.bucket(bucket_name)
    blob = bucket.blob(blob_name)
    if not blob.exists():
        return None
    return json.loads(blob.download_as_text(encoding="utf-8"))


def upload_json(
    blob_name: str,
    data: Any,
    *,
    bucket_name: str | None = None,
) -> None:
    """
    Upload a JSON-serializable value to a GCS object, replacing it.

    :param blob_name: Object path in bucket
    :param data: Value passed to json.dumps
    :param bucket_name: GCS bucket; default from GCS_BUCKET env or "watch-progress"
    """
    from google.cloud import storage

    bucket_name = bucket_name or get_bucket_name()
    client = storage.Client()
    bucket = client.bucket(bucket_name)
    blob = bucket.blob(blob_name)
    blob.upload_from_string(json.dumps(data, sort_keys=True), content_type="application/json")
