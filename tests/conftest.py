"""Shared fixtures for the chain command test suite."""

import io

import pytest
from rich.console import Console


@pytest.fixture
def console():
    """A console writing plain text to an in-memory buffer."""
    return Console(
        file=io.StringIO(),
        width=200,
        force_terminal=False,
        color_system=None,
    )


@pytest.fixture
def output(console):
    """Callable returning everything written to ``console`` so far."""
    return lambda: console.file.getvalue()
