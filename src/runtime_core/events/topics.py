"""Topic names shared between the runtime core and its collaborators.

Topics follow the ``<domain>:<action>`` convention; wildcard subscribers
usually listen on ``<domain>:*``.
"""

# Emitted by the data client
API_REQUEST_SUCCESS = "api:request-success"
API_REQUEST_ERROR = "api:request-error"
API_CACHE_CLEARED = "api:cache-cleared"
API_AUTH_TOKEN_SET = "api:auth-token-set"
API_AUTH_TOKEN_CLEARED = "api:auth-token-cleared"
API_REQUEST_CANCELLED = "api:request-cancelled"
API_ALL_REQUESTS_CANCELLED = "api:all-requests-cancelled"

# Consumed by the data client
API_CLEAR_CACHE = "api:clear-cache"
AUTH_TOKEN_UPDATED = "auth:token-updated"

API_ALL = "api:*"
