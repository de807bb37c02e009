"""
Test Utilities
==============

Common fakes for testing.
"""

from .mocks import *
