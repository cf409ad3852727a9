"""
Shared fixtures: a small model registry and interpreter factories.
"""

import pytest

from factconf import Interpreter, InterpreterSettings

from models import make_registry


@pytest.fixture
def registry():
    return make_registry()


@pytest.fixture
def interp(registry):
    return Interpreter(resolver=registry)


@pytest.fixture
def widening_interp():
    settings = InterpreterSettings(widen_int_to_double=True)
    return Interpreter(resolver=make_registry(widen=True), settings=settings)
