"""
Sanctuary application package.

This package contains the guided-breathing engine, the journal and analytics
layers, local JSON storage and the Gemini chat client behind the desktop app.
"""

from .config import AppConfig
