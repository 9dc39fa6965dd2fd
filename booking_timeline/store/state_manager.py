import json
import logging
from typing import Iterable, List

from google.api_core.exceptions import NotFound
from google.cloud import storage

from booking_timeline.records.model import IntervalRecord, record_from_dict, record_to_dict

logger = logging.getLogger(__name__)

BUCKET_NAME = "booking-timeline-bucket"


def _get_blob(name: str, bucket_name: str = BUCKET_NAME):
    """
    Returns the GCS blob object for the timeline's state file.
    """
    client = storage.Client()
    bucket = client.bucket(bucket_name)
    filename = f"{name}_state.json"
    return bucket.blob(filename)


def load_previous_state(name: str, bucket_name: str = BUCKET_NAME) -> dict:
    """
    Loads the previous state from GCS.
    If the file does not exist, returns an empty default structure.
    """
    blob = _get_blob(name, bucket_name)

    try:
        data = blob.download_as_text()
        return json.loads(data)
    except NotFound:
        # No previous state exists yet
        return {
            "version": 0,
            "records": [],
        }


def save_state(name: str, state: dict, bucket_name: str = BUCKET_NAME):
    """
    Saves the given state dictionary to GCS as JSON.
    """
    blob = _get_blob(name, bucket_name)
    blob.upload_from_string(
        json.dumps(state, indent=2, sort_keys=True),
        content_type="application/json"
    )
    logger.info("Saved state for %s to %s", name, blob.name)


def state_from_records(records: Iterable[IntervalRecord], version: int) -> dict:
    return {
        "version": version,
        "records": [record_to_dict(r) for r in records],
    }


def records_from_state(state: dict) -> List[IntervalRecord]:
    """
    Rebuilds records from a saved state. Entries that can no longer be
    read are skipped and logged.
    """
    records = []
    for entry in state.get("records", []):
        try:
            records.append(record_from_dict(entry))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping unreadable record %s in saved state: %s", entry.get("id"), e)
    return records
