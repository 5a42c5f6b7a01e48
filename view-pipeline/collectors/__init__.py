"""Collectors that drive a sheet through the fetch pipeline."""

from .view_collector import CollectionReport, ViewCountCollector

__all__ = ["CollectionReport", "ViewCountCollector"]
