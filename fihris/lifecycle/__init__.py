"""Outline lifecycle controller."""

from .controller import (
    IndexController,
    LifecycleState,
    LifecycleError,
    InvalidTransitionError,
    RegenerationInProgressError,
)

__all__ = [
    "IndexController",
    "LifecycleState",
    "LifecycleError",
    "InvalidTransitionError",
    "RegenerationInProgressError",
]
