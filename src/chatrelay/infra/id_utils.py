"""Prefixed ID generation.

Request ids use a ``{prefix}_{random}`` format so an id found in a log
line can be told apart from a user id at a glance, e.g.
``req_a8Kx3nQ9mP2r``.  Callers may supply their own request id (for
example the upstream webhook's message id), which is used as-is.
"""

import secrets
import string

_ALPHABET = string.ascii_letters + string.digits
_DEFAULT_LENGTH = 12

REQUEST_ID_PREFIX = "req"


def generate_id(prefix: str, length: int = _DEFAULT_LENGTH) -> str:
    """Return ``"{prefix}_{random}"`` with *length* alphanumeric characters."""
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(length))
    return f"{prefix}_{suffix}"


def generate_request_id() -> str:
    return generate_id(REQUEST_ID_PREFIX)
