"""
Core infrastructure package for the Pipeline Report engine.

Provides:
- Configuration management via pydantic-settings
- Logging bootstrap for host applications
- The engine's error taxonomy
- Async PostgreSQL connectivity via asyncpg (reference collaborators only)

This module re-exports key components so other modules can write:

    from pipeline_report.core import get_settings, TransientFetchError

Components Re-exported:
    Settings: Pydantic settings class with all configuration parameters
    get_settings: Function returning the cached Settings singleton
    configure_logging: Apply the standard log format at settings.log_level
    init_db / close_db / get_db_pool: Database pool lifecycle
    PipelineReportError and subclasses: Error taxonomy
"""

# =============================================================================
# Re-exports from pipeline_report.core.config
# =============================================================================
from pipeline_report.core.config import Settings, get_settings, configure_logging

# =============================================================================
# Re-exports from pipeline_report.core.errors
# =============================================================================
from pipeline_report.core.errors import (
    PipelineReportError,
    TransientFetchError,
    IllegalTransitionError,
    EditFailure,
    StaleResponseError,
)

# =============================================================================
# Re-exports from pipeline_report.core.database
# =============================================================================
from pipeline_report.core.database import init_db, close_db, get_db_pool

__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    'configure_logging',
    # Error taxonomy (from errors.py)
    'PipelineReportError',
    'TransientFetchError',
    'IllegalTransitionError',
    'EditFailure',
    'StaleResponseError',
    # Database pool lifecycle (from database.py)
    'init_db',
    'close_db',
    'get_db_pool',
]
