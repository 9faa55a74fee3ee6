
# iot_registry/
# │
# ├── exceptions/
# │   ├── __init__.py
# │   ├── base.py                    # ServiceError + ErrorKind (business-level errors)
# │   ├── integrity_classifier.py    # Store-level fault classification (Postgres / MySQL / SQLite)
# │   └── mapper.py                  # Map store faults to ServiceError; db_error_handler

from .base import ErrorKind, ServiceError
from .mapper import db_error_handler, map_store_fault

__all__ = [
    "ErrorKind",
    "ServiceError",
    "db_error_handler",
    "map_store_fault",
]
