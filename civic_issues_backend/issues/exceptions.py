"""Error taxonomy for the issue lifecycle.

Every failure carries a ``kind`` so callers can tell them apart, plus the HTTP
status the REST layer answers with.
"""


class IssueError(Exception):
    kind = 'issue_error'
    status_code = 400

    def __init__(self, message, field=None):
        super().__init__(message)
        self.message = message
        self.field = field

    def as_dict(self):
        return {
            'kind': self.kind,
            'errors': {self.field or self.kind: self.message},
        }


class ValidationError(IssueError):
    """Malformed or missing input."""
    kind = 'validation_error'
    status_code = 400


class Unauthorized(IssueError):
    """The actor's role does not allow the operation."""
    kind = 'unauthorized'
    status_code = 403


class InvalidTransition(IssueError):
    """The status machine does not allow the requested change."""
    kind = 'invalid_transition'
    status_code = 400


class NotFound(IssueError):
    kind = 'not_found'
    status_code = 404
