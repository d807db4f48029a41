"""Result helpers for assertions."""

import pytest
from kungfu import Ok, Error


def ok(result):
    match result:
        case Ok(value):
            return value
        case Error(error):
            pytest.fail(f"expected Ok, got Error({error!r})")


def err(result):
    match result:
        case Error(error):
            return error
        case Ok(value):
            pytest.fail(f"expected Error, got Ok({value!r})")
