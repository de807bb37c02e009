"""
Data Models
===========

Pydantic models for request parameters, telemetry and rendering results.
"""
