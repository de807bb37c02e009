"""
Core Business Logic
===================

Rendering pipelines and telemetry.

Components:
- rendering: OG image compositing, HTML templates and browser screenshots
- telemetry: Client metadata extraction and Plausible event dispatch
"""
