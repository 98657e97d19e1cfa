"""
Centralized logging configuration for Clinic Registry.
Provides component-specific loggers with separate log files.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import datetime

from ..config import get_config


DETAILED_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(funcName)s() - %(message)s'
SIMPLE_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


class ComponentLogger:
    """Manages component-specific logging with separate files."""

    _loggers: Dict[str, logging.Logger] = {}
    _initialized = False
    _log_dir: Optional[Path] = None

    # Component definitions with their log levels
    COMPONENTS = {
        'api': {'level': logging.INFO, 'file': 'api.log'},
        'database': {'level': logging.INFO, 'file': 'database.log'},
        'services': {'level': logging.INFO, 'file': 'services.log'},
        'auth': {'level': logging.INFO, 'file': 'auth.log'},
        'main': {'level': logging.INFO, 'file': 'main.log'},
        'error': {'level': logging.ERROR, 'file': 'errors.log'},  # Centralized error log
    }

    @classmethod
    def initialize(cls, log_dir: Optional[str] = None, debug: bool = False) -> None:
        """
        Initialize the logging system with component-specific loggers.

        Args:
            log_dir: Directory for log files. Defaults to config.app.log_dir
            debug: Enable debug logging for all components
        """
        if cls._initialized:
            return

        config = get_config()
        debug = debug or config.server.debug
        to_file = config.app.log_to_file

        if to_file:
            cls._log_dir = Path(log_dir or config.app.log_dir)
            cls._log_dir.mkdir(parents=True, exist_ok=True)

        detailed_formatter = logging.Formatter(DETAILED_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
        simple_formatter = logging.Formatter(SIMPLE_FORMAT, datefmt='%H:%M:%S')

        root_level = logging.DEBUG if debug else getattr(logging, config.app.log_level.upper(), logging.INFO)

        for component_name, component_config in cls.COMPONENTS.items():
            logger = logging.getLogger(f"clinic_registry.{component_name}")

            # Clear existing handlers
            logger.handlers.clear()
            logger.propagate = False

            level = logging.DEBUG if debug else max(root_level, component_config['level'])
            logger.setLevel(level)

            if to_file:
                file_handler = logging.handlers.RotatingFileHandler(
                    cls._log_dir / component_config['file'],
                    maxBytes=10 * 1024 * 1024,  # 10MB
                    backupCount=5,
                    encoding='utf-8'
                )
                file_handler.setLevel(level)
                file_handler.setFormatter(detailed_formatter)
                logger.addHandler(file_handler)

            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(logging.WARNING if to_file else level)
            console_handler.setFormatter(simple_formatter)
            logger.addHandler(console_handler)

            cls._loggers[component_name] = logger

        # Mark as initialized before logging to avoid recursion
        cls._initialized = True

        main_logger = cls._loggers['main']
        main_logger.info("Clinic Registry logging initialized")
        main_logger.info(f"Session started: {datetime.now().isoformat()}")
        if cls._log_dir:
            main_logger.info(f"Log directory: {cls._log_dir}")

    @classmethod
    def get_logger(cls, component: str) -> logging.Logger:
        """
        Get a logger for a specific component.

        Args:
            component: Component name (api, database, services, auth, ...)
                      Can also be a module path like 'clinic_registry.store.savepoints'

        Returns:
            Logger instance for the component
        """
        if not cls._initialized:
            cls.initialize()

        # Map module paths to components
        if component.startswith('clinic_registry.'):
            parts = component.split('.')
            if parts[1] in ('db', 'store', 'repositories'):
                component = 'database'
            elif parts[1] in ('api', 'main'):
                component = 'api'
            elif parts[1] == 'auth':
                component = 'auth'
            elif parts[1] == 'services':
                component = 'services'
            else:
                component = 'main'

        return cls._loggers.get(component, cls._loggers['main'])

    @classmethod
    def log_exception(cls, component: str, exc: Exception, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Log an exception with context to both component and error logs.

        Args:
            component: Component where the exception occurred
            exc: The exception to log
            context: Additional context information
        """
        component_logger = cls.get_logger(component)
        error_logger = cls._loggers['error']

        context_str = ""
        if context:
            context_str = " | Context: " + ", ".join(f"{k}={v}" for k, v in context.items())

        component_logger.error(f"Exception in {component}: {type(exc).__name__}: {exc}{context_str}", exc_info=exc)
        error_logger.error(f"[{component}] {type(exc).__name__}: {exc}{context_str}", exc_info=exc)

    @classmethod
    def get_log_directory(cls) -> Optional[Path]:
        """Get the current log directory path."""
        return cls._log_dir


# Convenience functions
def get_logger(component: str) -> logging.Logger:
    """Get a logger for a specific component."""
    return ComponentLogger.get_logger(component)


def initialize_logging(log_dir: Optional[str] = None, debug: bool = False) -> None:
    """Initialize the logging system."""
    ComponentLogger.initialize(log_dir=log_dir, debug=debug)


def log_exception(component: str, exc: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """Log an exception with context."""
    ComponentLogger.log_exception(component, exc, context)
