# equiprent/errors.py
"""Access-control error taxonomy.

Every error carries a generic, client-safe message only. The reason a request
was rejected is logged where the decision is made, never attached here.
"""


class AuthzError(Exception):
    """Base class for access-control failures."""

    status_code = 403
    public_detail = "Forbidden"

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.public_detail)


class Unauthenticated(AuthzError):
    """No credential, or the credential could not be verified."""

    status_code = 401
    public_detail = "Unauthorized"


class Forbidden(AuthzError):
    """Valid credential, but insufficient role or ownership."""


class NotFound(Forbidden):
    # Surfaces exactly like Forbidden so existence never leaks.
    pass


class StoreUnavailable(AuthzError):
    """The relational store could not answer a lookup."""

    status_code = 503
    public_detail = "Service unavailable"
