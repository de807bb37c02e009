"""
Rendering
=========

Artifact producers.

Components:
- og_image: Open Graph card compositing with Pillow
- templates: Jinja2 HTML user card
- screenshot: Playwright measure-then-capture pipeline
- thumbnails: Music thumbnail cropping
"""
