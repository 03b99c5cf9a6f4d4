from .config import config
from .logging_setup import logger, get_logger
from .exceptions import (
    ScanPlannerError, ValidationError, InvalidDateError, InvalidTransitionError,
    EditNotAllowedError, DuplicateScanWeekError, NotFoundError, ExportError
)

__all__ = [
    'config',
    'logger',
    'get_logger',
    'ScanPlannerError',
    'ValidationError',
    'InvalidDateError',
    'InvalidTransitionError',
    'EditNotAllowedError',
    'DuplicateScanWeekError',
    'NotFoundError',
    'ExportError'
]
