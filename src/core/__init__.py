"""Core models, configuration and shared infrastructure.

This package holds the value model, source descriptors, config parsing,
the error hierarchy and logging setup used by every other layer.
"""
