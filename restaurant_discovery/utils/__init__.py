"""Utility functions for caching, currency handling and CSV input/output"""
from .ttl_cache import TTLCache
from .loader import CSVExistingLocationsLoader, ExistingLocationsProvider, InMemoryExistingLocations

__all__ = ['TTLCache', 'CSVExistingLocationsLoader', 'ExistingLocationsProvider', 'InMemoryExistingLocations']
