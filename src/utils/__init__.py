"""
Utility modules for the update asset publisher.

This package provides shared utilities used across all publish stages:
- logging: Structured logging with entry/exit decorators
- retry: Backoff policies for transfers and polling
- config: Environment configuration
- config_loader: YAML publish profiles
- metrics: Prometheus instrumentation
"""

from src.utils.logging import get_logger, log_function_call

__all__ = ["get_logger", "log_function_call"]
