from __future__ import annotations

import pytest

import tagjson


@pytest.fixture(autouse=True)
def _auto_clean():
    old_error_types = tagjson.ERROR_TYPES.copy()
    yield
    tagjson.ERROR_TYPES.clear()
    tagjson.ERROR_TYPES.update(old_error_types)
