"""
SQLAlchemy models. Imported by init_db so create_all sees every table.
"""
from uninotes.models.kv_entry import KVEntry

__all__ = ["KVEntry"]
