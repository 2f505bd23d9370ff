"""Object store access layer.

This package adapts blob store clients to the probe and fetch
operations used by source trackers.
"""
