"""Aether: generated thoughts that drift and fade on screen."""

__version__ = "0.1.0"
