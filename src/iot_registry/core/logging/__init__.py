# src/iot_registry/core/logging/
# ├─ __init__.py            # public API: setup_logging, operation id helpers
# ├─ builder.py             # make_dict_config(settings) + setup_logging(settings)
# ├─ formatters.py          # JsonFormatter, ColorFormatter
# ├─ filters.py             # OperationIdFilter (+ contextvar helpers), RedactFilter
# └─ handlers.py            # handler factories (console, rotating files)


from .builder import setup_logging, make_dict_config
from .filters import bind_operation_id, get_operation_id, reset_operation_id, OperationIdFilter

__all__ = [
    "setup_logging",
    "make_dict_config",
    "bind_operation_id",
    "get_operation_id",
    "reset_operation_id",
    "OperationIdFilter",
]
