"""Persistence layer: the datastore gateway and its SQLite implementation."""

from intrdrm.db.gateway import DatastoreGateway, SQLiteGateway
from intrdrm.db.seed import SEED_CONCEPTS, seed_concepts
from intrdrm.db.stats import build_pool_statistics

__all__ = [
    "DatastoreGateway",
    "SEED_CONCEPTS",
    "SQLiteGateway",
    "build_pool_statistics",
    "seed_concepts",
]
