"""
Test Suite
==========

Test Categories:
- unit: Unit tests for individual components
- integration: HTTP endpoint tests against the FastAPI application
"""
