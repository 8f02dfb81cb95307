from fastapi import HTTPException, status


class ClinicError(HTTPException):
    """Base for every error the service reports to its callers.

    ``kind`` is the stable, caller-visible category; the HTTP status code is
    derived from it.
    """

    kind = "internal"
    status_code_for_kind = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "An unexpected error occurred"

    def __init__(self, detail: str = None, headers: dict = None):
        super().__init__(
            status_code=self.status_code_for_kind,
            detail=detail or self.default_detail,
            headers=headers,
        )


class Unauthenticated(ClinicError):
    kind = "unauthenticated"
    status_code_for_kind = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"


class Forbidden(ClinicError):
    kind = "forbidden"
    status_code_for_kind = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class NotFound(ClinicError):
    kind = "not_found"
    status_code_for_kind = status.HTTP_404_NOT_FOUND
    default_detail = "The requested resource was not found"


class Conflict(ClinicError):
    kind = "conflict"
    status_code_for_kind = status.HTTP_409_CONFLICT
    default_detail = "Conflict"


class SlotConflict(Conflict):
    default_detail = "Time slot already booked"


class ValidationFailed(ClinicError):
    kind = "validation"
    status_code_for_kind = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class InternalError(ClinicError):
    pass
