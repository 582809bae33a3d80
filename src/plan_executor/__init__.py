"""Transactional task-execution engine for automation plans."""

__version__ = "0.1.0"
