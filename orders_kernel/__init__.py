"""
Orders Kernel -- shared infrastructure for the recurring order engine.

Provides:
- Structured JSON logging with run-scoped context
- Typed exception hierarchy with machine-readable codes
- Injectable clock
- SQLAlchemy declarative base and session utilities
"""

__version__ = "0.1.0"
