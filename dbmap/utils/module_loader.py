"""Import helpers."""

import importlib
from typing import Any

__all__ = ("import_string",)


def import_string(dotted_path: str) -> "Any":
    """Dotted Path Import.

    Import a module path and return the attribute designated by the path. Both
    ``package.module.Attribute`` and ``package.module:Attribute`` forms are accepted.

    Args:
        dotted_path: The path of the object to import.

    Raises:
        ImportError: Could not import the module or resolve the attribute.

    Returns:
        object: The imported object.
    """
    if ":" in dotted_path:
        module_path, _, attribute_path = dotted_path.partition(":")
        try:
            obj = importlib.import_module(module_path)
        except ImportError as e:
            msg = f"Could not import '{dotted_path}': {e}"
            raise ImportError(msg) from e
        for attr in attribute_path.split("."):
            try:
                obj = getattr(obj, attr)
            except AttributeError as e:
                msg = f"Module '{module_path}' has no attribute '{attribute_path}'"
                raise ImportError(msg) from e
        return obj

    parts = dotted_path.split(".")
    for i in range(len(parts), 0, -1):
        module_path = ".".join(parts[:i])
        try:
            module = importlib.import_module(module_path)
            break
        except ModuleNotFoundError:
            continue
    else:
        msg = f"{dotted_path} doesn't look like a module path"
        raise ImportError(msg)

    obj = module
    for attr in parts[i:]:
        try:
            obj = getattr(obj, attr)
        except AttributeError as e:
            msg = f"Module '{module.__name__}' has no attribute '{attr}' in '{dotted_path}'"
            raise ImportError(msg) from e
    return obj
