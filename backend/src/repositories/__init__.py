# Repository interfaces and their SQLAlchemy implementations
from .catalog_store import CatalogStore, SqlCatalogStore
from .exception_store import ExceptionStore, SqlExceptionStore
from .occupancy_ledger import OccupancyLedger, SqlOccupancyLedger

__all__ = [
    "CatalogStore",
    "SqlCatalogStore",
    "ExceptionStore",
    "SqlExceptionStore",
    "OccupancyLedger",
    "SqlOccupancyLedger",
]
