# Fake implementations for testing

from .fake_activity_loader import FakeActivityLoader
from .fake_runner import FakeCall, FakeProcessRunner

__all__ = ["FakeActivityLoader", "FakeCall", "FakeProcessRunner"]
