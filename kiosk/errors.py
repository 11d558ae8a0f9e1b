"""Error kinds shared by the service layer and the HTTP boundary.

Services raise these before any write; `kiosk.main` maps them onto JSON
error responses carrying the `code` so clients can tell the kinds apart.
"""


class KioskError(Exception):
    code = "error"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(KioskError):
    code = "validation_error"
    status_code = 400


class UnauthorizedError(KioskError):
    code = "unauthorized"
    status_code = 401


class ForbiddenError(KioskError):
    code = "forbidden"
    status_code = 403


class NotFoundError(KioskError):
    code = "not_found"
    status_code = 404


class ConflictError(KioskError):
    code = "conflict"
    status_code = 409


class UpstreamError(KioskError):
    code = "upstream_error"
    status_code = 502
