from dbmap.core.binder import (
    MAX_BOUNDED_SIZE,
    UNBOUNDED_SIZE,
    DbType,
    Parameter,
    bind_argument,
    bind_arguments,
    create_parameter,
)
from dbmap.core.command import Command

__all__ = (
    "MAX_BOUNDED_SIZE",
    "UNBOUNDED_SIZE",
    "Command",
    "DbType",
    "Parameter",
    "bind_argument",
    "bind_arguments",
    "create_parameter",
)
