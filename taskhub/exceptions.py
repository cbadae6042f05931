"""
Error taxonomy shared by the access-control policies and the API layer.

Each error carries a stable machine-checkable ``kind`` and the HTTP status it
maps to; ``taskhub.main`` renders them as ``{"kind": ..., "detail": ...}``.
"""


class TaskHubError(Exception):
    kind = "internal_error"
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict:
        return {"kind": self.kind, "detail": self.detail}


class ValidationError(TaskHubError):
    """A required field is missing or a value is invalid."""

    kind = "validation_error"
    status_code = 400


class AuthenticationError(TaskHubError):
    kind = "unauthorized"
    status_code = 401


class ForbiddenError(TaskHubError):
    """The caller is authenticated but lacks the required role or relationship."""

    kind = "forbidden"
    status_code = 403


class NotFoundError(TaskHubError):
    kind = "not_found"
    status_code = 404


class ConflictError(TaskHubError):
    """Duplicate membership, promotion of an existing admin, and similar."""

    kind = "conflict"
    status_code = 409


class InternalError(TaskHubError):
    kind = "internal_error"
    status_code = 500


_KIND_BY_STATUS = {
    cls.status_code: cls.kind
    for cls in (ValidationError, AuthenticationError, ForbiddenError, NotFoundError, ConflictError)
}


def kind_for_status(status_code: int) -> str:
    """Kind for a framework-raised HTTP error (unknown route, wrong method, ...).

    Client statuses outside the taxonomy are reported as ``validation_error``.
    """
    if status_code >= 500:
        return InternalError.kind
    return _KIND_BY_STATUS.get(status_code, ValidationError.kind)
