"""Value transforms.

This package merges canonical configuration values from many sources.
"""
