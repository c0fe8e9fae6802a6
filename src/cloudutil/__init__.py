"""
cloudutil: helpers shared by cloud storage clients.

Modules:
    errors   - API error extraction, exception chain traversal, exception hierarchy
    logging  - Structured JSON logging with context propagation
    config   - YAML configuration for the error extractor
    utils    - JSON serialization for structured log records

Design Principles:
    - No dependencies on a specific storage backend
    - Classification is stateless and never raises
    - Type hints throughout
"""

from .types import ErrorCategory, ErrorClassifier

__version__ = "0.1.0"

__all__ = [
    "ErrorCategory",
    "ErrorClassifier",
]
