"""
Menswear Ops Exceptions

Exception classes shared by the services, stores and wizards.
"""

from typing import Any, Dict, Optional


class MenswearOpsError(Exception):
    """Base exception for all menswear_ops errors"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(MenswearOpsError):
    """Exception for missing or invalid backend configuration"""
    pass


class ServiceError(MenswearOpsError):
    """Exception for backend/query failures

    The message always reads ``Failed to <operation>: <backend message>``.
    """

    def __init__(self, message: str, operation: Optional[str] = None,
                 details: Optional[Any] = None):
        super().__init__(message)
        self.operation = operation
        self.details = details

    @classmethod
    def from_backend(cls, operation: str, error: Any) -> 'ServiceError':
        backend_message = getattr(error, 'message', None) or str(error) or 'Unknown error occurred'
        return cls(f"Failed to {operation}: {backend_message}", operation=operation, details=error)


class NotFoundError(ServiceError):
    """Exception for single-row lookups and updates that matched no rows"""
    pass


class ValidationError(MenswearOpsError):
    """Exception for client-side validation failures, raised before any request"""

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        self.errors = dict(errors)
        if message is None:
            message = "; ".join(f"{field}: {error}" for field, error in self.errors.items())
        super().__init__(message)


class AuthError(MenswearOpsError):
    """Exception for login failures and missing or insufficient sessions"""
    pass


class WizardError(MenswearOpsError):
    """Exception for blocked wizard navigation

    Carries the title of the warning shown to the user.
    """

    def __init__(self, title: str, message: str):
        super().__init__(message)
        self.title = title


class WizardSubmissionError(MenswearOpsError):
    """Exception for a wizard submission that failed part way through"""

    def __init__(self, message: str, cause: Optional[BaseException] = None,
                 created: Optional[Dict[str, Any]] = None,
                 rolled_back: bool = False):
        super().__init__(message)
        self.cause = cause
        self.created = created or {}
        self.rolled_back = rolled_back
