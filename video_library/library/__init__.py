"""Catalog, reconciliation, usage tracking and deletion for the video library."""
