"""Automated release orchestration for trunk-based repositories."""

__version__ = "0.1.0"
