# Shared utilities: configuration, logging, diagnostics, model loading.
# model_loader is imported explicitly (Open3D).

from .config import ComparisonConfig, load_config
from .diagnostics import DiagnosticEvent, emit
from .logging_setup import setup_logging

__all__ = [
    'ComparisonConfig',
    'DiagnosticEvent',
    'emit',
    'load_config',
    'setup_logging',
]
