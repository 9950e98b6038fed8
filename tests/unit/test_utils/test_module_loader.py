from pathlib import Path

import pytest

from dbmap.utils.module_loader import import_string


def test_import_string_dotted_and_colon_forms() -> None:
    assert import_string("pathlib.Path") is Path
    assert import_string("pathlib:Path") is Path
    assert import_string("dbmap.adapters.aiosqlite:AiosqliteProvider.connect").__name__ == "connect"


def test_import_string_module() -> None:
    import pathlib

    assert import_string("pathlib") is pathlib


@pytest.mark.parametrize("path", ["imaginary_module", "pathlib.Nope", "pathlib:Nope", "imaginary_module:Thing"])
def test_import_string_errors(path: str) -> None:
    with pytest.raises(ImportError):
        import_string(path)
