"""
Database models - import all models here so create_all can discover them.
"""
from bizintel.models.store_record import StoreRecord

__all__ = [
    "StoreRecord",
]
