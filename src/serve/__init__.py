"""Aggregation and publishing layer.

This package runs the poll loop over source trackers.
It hands merged snapshots to downstream consumers.
"""
