# utils/error_handler.py - error taxonomy, logging setup and error handling
import functools
import logging
import traceback
import sys
from datetime import datetime
from typing import Dict, Any, Optional
from enum import Enum
from pathlib import Path
import json

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """
    📝 Configure root logging

    Always logs to stdout. When log_file is given, also writes the full log
    there and error details (JSON) to errors.log in the same directory.
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    errors_logger = logging.getLogger('errors')
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding='utf-8'))

        error_file_handler = logging.FileHandler(log_path.parent / 'errors.log', encoding='utf-8')
        error_file_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
        errors_logger.addHandler(error_file_handler)
    errors_logger.setLevel(logging.ERROR)
    errors_logger.propagate = False

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


class ErrorType(Enum):
    """Error categories"""
    VALIDATION_ERROR = "validation_error"
    DATABASE_ERROR = "database_error"
    UPLOAD_ERROR = "upload_error"
    SYSTEM_ERROR = "system_error"


class ErrorSeverity(Enum):
    """Error severity"""
    LOW = "low"           # info log only
    MEDIUM = "medium"     # warning
    HIGH = "high"         # error + errors.log
    CRITICAL = "critical" # service cannot run


class CampusConnectError(Exception):
    """🚨 Base class for errors that map to an HTTP response"""

    status_code = 500

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.SYSTEM_ERROR,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        details: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        status_code: Optional[int] = None
    ):
        self.message = message
        self.error_type = error_type
        self.severity = severity
        self.details = details or {}
        self.user_message = user_message or "Internal server error"
        if status_code is not None:
            self.status_code = status_code
        self.timestamp = datetime.now().isoformat()

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'message': self.message,
            'error_type': self.error_type.value,
            'severity': self.severity.value,
            'details': self.details,
            'user_message': self.user_message,
            'status_code': self.status_code,
            'timestamp': self.timestamp
        }


class ValidationError(CampusConnectError):
    """Missing or invalid input, or a failed credential match"""

    status_code = 400

    def __init__(self, message: str, field: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if field:
            details['field'] = field

        super().__init__(
            message=message,
            error_type=ErrorType.VALIDATION_ERROR,
            severity=ErrorSeverity.LOW,
            details=details,
            user_message=message,
            **kwargs
        )


class StoreError(CampusConnectError):
    """Store connectivity or query failure"""

    status_code = 500

    def __init__(self, message: str, query: str = None, user_message: str = "Internal server error", **kwargs):
        details = kwargs.pop('details', {})
        if query:
            details['query'] = query

        super().__init__(
            message=message,
            error_type=ErrorType.DATABASE_ERROR,
            severity=ErrorSeverity.HIGH,
            details=details,
            user_message=user_message,
            **kwargs
        )


class UploadError(CampusConnectError):
    """Rejected file upload"""

    def __init__(self, message: str, status_code: int = 400, **kwargs):
        super().__init__(
            message=message,
            error_type=ErrorType.UPLOAD_ERROR,
            severity=ErrorSeverity.LOW,
            user_message=message,
            status_code=status_code,
            **kwargs
        )


class ErrorHandler:
    """🛡️ Logs errors according to their severity"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.error_logger = logging.getLogger('errors')

    def handle_error(
        self,
        error: Exception,
        context: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        🚨 Classify and log an error

        Args:
            error: the raised exception
            context: where it happened (function, request path, ...)

        Returns:
            error info dict
        """
        context = context or {}

        if isinstance(error, CampusConnectError):
            error_info = error.to_dict()
            error_info['handled_by'] = 'custom_handler'
        else:
            error_info = {
                'message': str(error),
                'error_type': ErrorType.SYSTEM_ERROR.value,
                'severity': ErrorSeverity.HIGH.value,
                'details': {
                    'exception_type': type(error).__name__,
                    'exception_module': getattr(error, '__module__', 'unknown')
                },
                'user_message': "Internal server error",
                'status_code': 500,
                'timestamp': datetime.now().isoformat(),
                'handled_by': 'generic_handler'
            }

        error_info['context'] = context
        error_info['traceback'] = ''.join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )

        self._log_error(error_info)
        return error_info

    def _log_error(self, error_info: Dict[str, Any]):
        severity = error_info.get('severity', 'medium')
        error_type = error_info.get('error_type', 'unknown')
        message = error_info.get('message', 'Unknown error')

        log_message = f"[{error_type.upper()}] {message}"

        if severity == ErrorSeverity.CRITICAL.value:
            self.logger.critical(log_message)
            self.error_logger.critical(json.dumps(error_info, ensure_ascii=False, indent=2, default=str))
        elif severity == ErrorSeverity.HIGH.value:
            self.logger.error(log_message)
            self.error_logger.error(json.dumps(error_info, ensure_ascii=False, indent=2, default=str))
        elif severity == ErrorSeverity.MEDIUM.value:
            self.logger.warning(log_message)
        else:
            self.logger.info(log_message)

    def create_error_response(
        self,
        error: Exception,
        context: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Response body and status for an error"""
        error_info = self.handle_error(error, context)

        return {
            'body': {'message': error_info.get('user_message', 'Internal server error')},
            'status_code': error_info.get('status_code', 500)
        }


error_handler = ErrorHandler()


def create_error_response(error: Exception, context: Dict[str, Any] = None) -> Dict[str, Any]:
    return error_handler.create_error_response(error, context)


def async_error_handler_decorator(func):
    """Wrap unexpected route failures so they carry the call context"""
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except CampusConnectError:
            raise
        except Exception as e:
            context = {
                'function': func.__name__,
                'exception_type': type(e).__name__,
                'kwargs': str(kwargs)[:200]
            }
            raise CampusConnectError(
                f"Unexpected error in {func.__name__}: {e}",
                severity=ErrorSeverity.HIGH,
                details=context
            ) from e

    return wrapper
