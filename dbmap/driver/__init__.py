from dbmap.driver._base import DriverConnection, DriverReader, DriverTransaction
from dbmap.driver._executor import (
    convert_scalar,
    create_command,
    execute,
    execute_command,
    scalar_command,
    select,
    select_one_or_none,
    select_value,
)

__all__ = (
    "DriverConnection",
    "DriverReader",
    "DriverTransaction",
    "convert_scalar",
    "create_command",
    "execute",
    "execute_command",
    "scalar_command",
    "select",
    "select_one_or_none",
    "select_value",
)
