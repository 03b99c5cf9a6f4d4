import logging
import logging.handlers
from pathlib import Path
import traceback
from datetime import datetime

from scan_planner.config import config

class Logger:
    """Logging manager for the Scan Planner.

    Named loggers write to ``<directory>/<name>.log`` through a rotating
    file handler and to the console; they do not propagate to the root.
    """

    _instance = None
    _loggers = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Logger, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._log_config = config.log_config
        self._log_dir = Path(self._log_config['directory'])
        self._formatter = logging.Formatter(self._log_config['format'])
        level_name = self._log_config['level'].upper()
        self._level = getattr(logging, level_name, logging.INFO)

        if self._log_config['file_output']:
            self._log_dir.mkdir(parents=True, exist_ok=True)

        root_logger = logging.getLogger()
        root_logger.setLevel(self._level)
        self._reset_handlers(root_logger, None)

        self._app_logger = self.get_logger('app')
        self._initialized = True

    def _reset_handlers(self, target, log_file):
        for handler in target.handlers[:]:
            target.removeHandler(handler)

        handlers = []
        if log_file is not None and self._log_config['file_output']:
            handlers.append(logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=self._log_config['max_size_mb'] * 1024 * 1024,
                backupCount=self._log_config['backup_count']
            ))
        if self._log_config['console_output']:
            handlers.append(logging.StreamHandler())

        for handler in handlers:
            handler.setFormatter(self._formatter)
            target.addHandler(handler)

    def get_logger(self, name):
        """Get a logger with the specified name.
        
        Args:
            name: Name of the logger (also the log file name)
            
        Returns:
            Configured logger instance
        """
        if name in self._loggers:
            return self._loggers[name]

        named_logger = logging.getLogger(name)
        named_logger.setLevel(self._level)
        self._reset_handlers(named_logger, self._log_dir / f"{name}.log")
        named_logger.propagate = False

        self._loggers[name] = named_logger
        return named_logger
    
    def log_exception(self, logger_name, exception, message=None):
        """Log an exception with stack trace.
        
        Args:
            logger_name: Logger name
            exception: Exception object
            message: Optional message to include
        """
        logger = self.get_logger(logger_name)
        
        if message:
            logger.error(f"{message}: {str(exception)}")
        else:
            logger.error(str(exception))
        
        logger.error(traceback.format_exc())
    
    @property
    def app_logger(self):
        """Get the application logger."""
        return self._app_logger
    
    def operation_start_log(self, operation_name, additional_info=None):
        """Log the start of a long-running operation such as an export.
        
        Args:
            operation_name: Name of the operation
            additional_info: Optional additional information
            
        Returns:
            Dictionary with operation logging information
        """
        op_logger = self.get_logger('operations')
        start_time = datetime.now()
        
        log_info = {
            'operation_name': operation_name,
            'start_time': start_time,
            'additional_info': additional_info
        }
        
        op_logger.info(f"Starting operation: {operation_name}")
        if additional_info:
            op_logger.info(f"Operation info: {additional_info}")
        
        return log_info
    
    def operation_end_log(self, log_info, success=True, result_info=None):
        """Log the end of a long-running operation.
        
        Args:
            log_info: Dictionary returned by operation_start_log
            success: Whether the operation succeeded
            result_info: Optional result information
        """
        op_logger = self.get_logger('operations')
        end_time = datetime.now()
        
        operation_name = log_info.get('operation_name', 'Unknown')
        start_time = log_info.get('start_time', end_time)
        duration = end_time - start_time
        
        if success:
            op_logger.info(f"Completed operation: {operation_name}")
        else:
            op_logger.error(f"Failed operation: {operation_name}")
        
        op_logger.info(f"Operation duration: {duration}")
        
        if result_info:
            op_logger.info(f"Operation results: {result_info}")

# Global logger instance
logger = Logger()

def get_logger(name):
    """Get a logger with the specified name."""
    return logger.get_logger(name)

def log_exception(logger_name, exception, message=None):
    """Log an exception with stack trace."""
    logger.log_exception(logger_name, exception, message)
