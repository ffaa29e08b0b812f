"""JSON feed for the store locator map."""

from store_locator.publish.feed import FeedResult, feed_from_frame, run_publish

__all__ = ["FeedResult", "feed_from_frame", "run_publish"]
