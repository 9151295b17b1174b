"""
Persistence of saved scale results.
"""

from bedside_scales.storage.base import InMemoryResultStore, ResultStore
from bedside_scales.storage.json_store import JsonFileResultStore
