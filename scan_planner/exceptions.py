class ScanPlannerError(Exception):
    """Base exception for Scan Planner errors.

    Subclasses set ``default_message``; ``code`` is a short upper-case tag
    (e.g. 'DUPLICATE_WEEK') and ``details`` any JSON-friendly context.
    """

    default_message = "An error occurred in the Scan Planner"

    def __init__(self, message=None, code=None, details=None):
        self.message = message or self.default_message
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to a dictionary."""
        error_dict = {
            'error': self.__class__.__name__,
            'message': self.message,
        }
        if self.code:
            error_dict['code'] = self.code
        if self.details:
            error_dict['details'] = self.details
        return error_dict


class ValidationError(ScanPlannerError):
    """A cluster or scan failed validation; ``details`` maps field to message."""
    default_message = "Validation error"


class InvalidDateError(ScanPlannerError):
    """A scan week cannot be parsed as a date."""
    default_message = "Invalid date"


class InvalidTransitionError(ScanPlannerError):
    """A workflow action outside the allowed role/mode/status."""
    default_message = "Invalid workflow transition"


class EditNotAllowedError(InvalidTransitionError):
    """A cluster is read-only for the current role and mode."""
    default_message = "Cluster is not editable"


class DuplicateScanWeekError(ScanPlannerError):
    """A product already has a scan in the requested week."""
    default_message = "Duplicate scan week"


class NotFoundError(ScanPlannerError):
    """A requested cluster, product or scan does not exist."""
    default_message = "Resource not found"


class ExportError(ScanPlannerError):
    """An export could not be built or written."""
    default_message = "Export error"
