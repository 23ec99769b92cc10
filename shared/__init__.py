"""
Shared utilities for the site capture engine.

This package is intentionally small and focused. It currently provides:

- `shared.config` for environment-based configuration
- `shared.logging` for structlog-based structured logging

The capture package treats `shared/` as read-only infrastructure code and
avoids introducing capture-specific coupling here.
"""
