class DomainError(Exception):
    """Base class for failures the request layer reports to the caller.

    `code` is stable and machine-readable (e.g. ``TAG_003``); `message` is safe
    to show to users and never contains internal identifiers.
    """

    status_code = 400
    kind = 'domain_error'

    def __init__(self, code, message):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message

    def to_dict(self):
        return {"error": self.message, "code": self.code, "kind": self.kind}


class NotFound(DomainError):
    status_code = 404
    kind = 'not_found'


class PermissionDenied(DomainError):
    status_code = 403
    kind = 'permission_denied'


class InvalidInput(DomainError):
    status_code = 400
    kind = 'invalid_input'


class LimitExceeded(DomainError):
    status_code = 400
    kind = 'limit_exceeded'


class Conflict(DomainError):
    status_code = 409
    kind = 'conflict'


class AlreadyDecided(DomainError):
    status_code = 400
    kind = 'already_decided'
