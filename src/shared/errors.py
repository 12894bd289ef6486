"""Error taxonomy shared by the domain engines and the HTTP layer.

Each error carries the HTTP status the global exception handler maps it to,
and a short machine-readable code for the response body.
"""


class TmapError(Exception):
    """Base class for all expected failures raised by the engine."""

    status_code: int = 500
    code: str = "internal_server_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TmapError):
    """Missing or malformed identifier. Never retried."""

    status_code = 400
    code = "bad_request"


class NotFoundError(TmapError):
    """Referenced entity is absent."""

    status_code = 404
    code = "not_found"


class ConflictError(TmapError):
    """Entity already exists (e.g. a dish name reused at one restaurant)."""

    status_code = 409
    code = "conflict"


class InvalidReferral(TmapError):
    """Self-referral, or referring into a dish the referrer does not hold."""

    status_code = 422
    code = "invalid_referral"


class UpstreamUnavailable(TmapError):
    """Store or chain read failed. Safe for the caller to retry."""

    status_code = 503
    code = "upstream_unavailable"


class PartialCascadeFailure(TmapError):
    """A restaurant cascade stopped part-way through.

    ``state`` is the last state the coordinator reached and
    ``purged_dish_ids`` lists the dishes whose references and records were
    fully removed before the failure. Re-running the cascade is safe.
    """

    status_code = 500
    code = "partial_cascade_failure"

    def __init__(
        self,
        message: str,
        restaurant_id: str,
        state: str,
        purged_dish_ids: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.restaurant_id = restaurant_id
        self.state = state
        self.purged_dish_ids = list(purged_dish_ids or [])
