"""Source ingestion layer.

This package decodes configuration objects into canonical values.
It tracks each source's last good snapshot for change detection.
"""
