"""Genius Machine: layered multi-archetype insight engine"""

__version__ = "1.0.0"
