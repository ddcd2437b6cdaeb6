"""
Test fixtures for Beacon Analytics.

This module provides reusable test data and test doubles.
"""

from .factories import *
from .mocks import *

__all__ = [
    # Factories
    "EventPayloadFactory",
    "RegistrationFactory",
    # Mocks
    "RecordingWorkQueue",
    "broken_session_factory",
]
