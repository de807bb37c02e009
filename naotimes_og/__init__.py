"""
naoTimes Open Graph
===================

Image rendering service for naoTimes.

This package provides:
- Open Graph preview cards composited with Pillow
- Discord-style user cards captured from HTML with Playwright
- Music thumbnail helpers
- Anonymized Plausible analytics for rendered artifacts
"""

__version__ = "1.0.0"
__author__ = "naoTimes Team"
