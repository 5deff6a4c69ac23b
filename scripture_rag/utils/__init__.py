"""Utility modules for retrieval."""
from .logger import RetrievalLogger, LogLevel, create_logger, PerformanceTimer

__all__ = [
    'RetrievalLogger',
    'LogLevel',
    'create_logger',
    'PerformanceTimer'
]
