import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional

from booking_timeline.calendars.fetch_calendars import DEFAULT_TIMEOUT, fetch_calendar
from booking_timeline.calendars.ingest import tag_events
from booking_timeline.calendars.manual import load_manual_bookings
from booking_timeline.config.utils import (
    FeedSource,
    iter_feeds,
    load_config,
    resolve_path,
    timeline_window,
    unit_colors,
)
from booking_timeline.log import setup_logging
from booking_timeline.store.diff_records import diff_records
from booking_timeline.store.record_store import IngestReport, RecordStore
from booking_timeline.store.state_manager import (
    BUCKET_NAME,
    load_previous_state,
    records_from_state,
    save_state,
    state_from_records,
)
from booking_timeline.timeline.lanes import LaneAssignment, max_concurrency

# Not __name__: under "python -m" that would be __main__
logger = logging.getLogger("booking_timeline.run")


def _fetch_feed(feed: FeedSource, timeout: int):
    events = fetch_calendar(feed.source, timeout=timeout)
    return tag_events(events, feed.unit_key, feed.provider_key, feed.color)


def import_feeds(
    store: RecordStore,
    feeds: List[FeedSource],
    max_workers: int = 4,
    timeout: int = DEFAULT_TIMEOUT,
) -> Dict[FeedSource, Optional[IngestReport]]:
    """
    Fetches every feed in parallel and folds each result into the store as
    soon as it arrives, one batch at a time.

    A failed feed is logged and reported as None; it never stops the others.
    """
    reports = {}

    if not feeds:
        return reports

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {pool.submit(_fetch_feed, feed, timeout): feed for feed in feeds}

        for future in as_completed(futures):
            feed = futures[future]
            try:
                records, undecodable = future.result()
            except Exception:
                logger.exception("Failed to import %s/%s", feed.unit_key, feed.provider_key)
                reports[feed] = None
                continue

            report = store.fold_batch(records)
            if undecodable:
                logger.warning("%s/%s: %d events had unreadable dates",
                               feed.unit_key, feed.provider_key, len(undecodable))
            logger.info("%s/%s: %s", feed.unit_key, feed.provider_key, report)
            reports[feed] = report

    return reports


def import_manual(store: RecordStore, path: str) -> IngestReport:
    total = IngestReport()

    for record in load_manual_bookings(path):
        report = store.add_manual(record)
        total.accepted.extend(report.accepted)
        total.subsumed.extend(report.subsumed)
        total.duplicates.extend(report.duplicates)
        total.rejected.extend(report.rejected)

    logger.info("Manual bookings: %s", total)
    return total


def log_layout(store: RecordStore, config: dict) -> Dict[str, LaneAssignment]:
    window_start, window_end = timeline_window(config)
    layouts = {}

    for unit in store.units():
        visible, assignment = store.layout(unit, window_start, window_end)
        logger.info(
            "  -> %s: %d visible bookings in %d lanes (peak overlap %d)",
            unit, len(visible), assignment.lane_count, max_concurrency(visible),
        )
        layouts[unit] = assignment

    return layouts


def main(config_path: str = "config.yaml"):
    setup_logging()
    config = load_config(config_path)

    fetch_settings = config.get("fetch") or {}
    state_settings = config.get("state") or {}
    bucket = state_settings.get("bucket", BUCKET_NAME)
    state_name = state_settings.get("name", "timeline")

    feeds = iter_feeds(config)
    known_units = set(unit_colors(config))
    logger.info("Loaded %d feeds for %d units", len(feeds), len(known_units))

    # Load previous state from GCS
    prev_state = load_previous_state(state_name, bucket)
    previous = records_from_state(prev_state)
    store = RecordStore(previous)
    logger.info("Previous state: %d records", len(previous))

    import_feeds(
        store,
        feeds,
        max_workers=int(fetch_settings.get("max_workers", 4)),
        timeout=int(fetch_settings.get("timeout", DEFAULT_TIMEOUT)),
    )

    manual_path = config.get("manual_bookings")
    if manual_path:
        import_manual(store, resolve_path(manual_path))

    absorbed = store.merge_pass()
    if absorbed:
        logger.info("Merge pass absorbed %d records", absorbed)

    for unit in store.units():
        if unit not in known_units:
            logger.warning("Records reference unit %s which is not configured", unit)

    log_layout(store, config)

    diff = diff_records(previous, store.records)
    logger.info(
        "Changes since last run: %d added, %d removed, %d changed",
        len(diff["added"]), len(diff["removed"]), len(diff["changed"]),
    )
    logger.info("Totals: %s", store.summary())

    # Save updated state back to GCS
    snapshot = store.snapshot()
    save_state(
        state_name,
        state_from_records(snapshot.records, prev_state.get("version", 0) + snapshot.version),
        bucket,
    )


if __name__ == "__main__":
    main()
