"""
Error types shared by the record stores, the signing service and the API layer.
"""
from typing import Dict, Optional


class RecordError(Exception):
    """Base exception for record store and signing errors"""

    def __init__(self, message: str, kind: Optional[str] = None):
        self.message = message
        self.kind = kind
        super().__init__(self.message)


class NotFound(RecordError):
    """Raised when an identifier does not resolve to a record"""

    def __init__(self, kind: str, record_id):
        self.record_id = record_id
        super().__init__(f"{kind.capitalize()} not found (Id {record_id})", kind)


class InvalidToken(RecordError):
    """Raised when a signing token does not resolve to exactly one record"""

    def __init__(self, kind: str):
        super().__init__(f"This {kind} signing link is invalid or has expired", kind)


class ValidationFailed(RecordError):
    """Carries the complete field error map of a rejected form"""

    def __init__(self, kind: str, errors: Dict[str, str]):
        self.errors = dict(errors)
        fields = ', '.join(sorted(self.errors))
        super().__init__(f"Invalid {kind} data: {fields}", kind)


class RecordApiError(RecordError):
    """Raised when the remote record API rejects a request or is unreachable"""
    pass
