"""
Constants and configuration defaults for the HN feed client.
"""

# Upstream APIs
HN_API_BASE = "https://hacker-news.firebaseio.com/v0"
ALGOLIA_API_BASE = "https://hn.algolia.com/api/v1"
HN_ITEM_URL = "https://news.ycombinator.com/item?id={id}"

# HTTP
HTTP_TIMEOUT = 15.0
HTTP_CONNECT_TIMEOUT = 10.0
HTTP_USER_AGENT = "hn-feed/0.1"
EXTERNAL_REQUEST_SEMAPHORE = 10  # Max concurrent item requests

# Pagination
DEFAULT_BATCH_SIZE = 10  # Stride over the upstream id list, not a rendered count

# Timing (milliseconds, as stored in config)
ADVANCE_THROTTLE_MS = 1000
SCROLL_THROTTLE_MS = 200
LIVE_UPDATE_INTERVAL_MS = 5000
SEARCH_DEBOUNCE_MS = 300

# Scroll proximity: distance from the document bottom that counts as "near"
SCROLL_PROXIMITY_MARGIN = 100

# User-facing messages
MSG_LOAD_POSTS_FAILED = "Unable to load posts."
MSG_LOAD_ITEM_FAILED = "Unable to load item."
MSG_LOAD_MORE_FAILED = "Failed to load more posts."
MSG_SEARCH_FAILED = "Search failed."
MSG_NO_MORE_RESULTS = "No more posts."
MSG_NO_POLLS = "No polls available."
