"""
Pytest configuration file for the lazy combinator tests.

This file ensures that the project root is in the Python path so that test
files can import the lazy, reducers, models and utils modules.
"""

import sys
from pathlib import Path

# Add the parent directory to the Python path
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

import pytest

from utils import CountingSource


@pytest.fixture
def counting_source():
    """Instrumented source over 1..10"""
    return CountingSource(range(1, 11))


@pytest.fixture
def make_counting_source():
    """Factory for instrumented sources over arbitrary items"""
    def _make(items, trace=False):
        return CountingSource(items, trace=trace)
    return _make
