"""Request context management for observability.

Context variables for request tracking across async boundaries.
"""

from contextvars import ContextVar

# Request ID - unique per HTTP request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Acting user - set once the identity resolver has attached a principal
user_id_var: ContextVar[str] = ContextVar("user_id", default="")
