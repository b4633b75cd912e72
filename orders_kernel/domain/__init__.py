"""Kernel domain layer: the clock abstraction."""

from orders_kernel.domain.clock import Clock, DeterministicClock, SystemClock

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
]
