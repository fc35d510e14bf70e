"""
Error taxonomy shared by the calculators, the workflow and the API.

Every error carries a stable `code` so the HTTP layer can hand it to
the frontend as a value instead of a traceback.
"""


class LogbookError(Exception):
    code = "LogbookError"
    http_status = 400

    def __init__(self, message: str = "", field: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.field = field

    def as_dict(self):
        body = {"error": self.code, "detail": self.message}
        if self.field:
            body["field"] = self.field
        return body


class InvalidInput(LogbookError, ValueError):
    code = "InvalidInput"
    http_status = 422


class MissingRemarks(LogbookError):
    code = "MissingRemarks"
    http_status = 422


class Unauthorized(LogbookError):
    code = "Unauthorized"
    http_status = 403


class InvalidTransition(LogbookError):
    code = "InvalidTransition"
    http_status = 409


class NotFound(LogbookError, LookupError):
    code = "NotFound"
    http_status = 404
