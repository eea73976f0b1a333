"""
Integration test fixtures for Atomize.

Everything here runs against a real JSON task file in tmp_path, so tests
can rebuild the manager and check that state survived the round trip.
"""

import pytest

from atomize.config import AtomizeConfig
from atomize.storage.json_file import JsonFileStorageAdapter
from atomize.tasks.manager import build_task_manager


@pytest.fixture
def task_file(temp_data_dir):
    return temp_data_dir / "atomize.json"


@pytest.fixture
def open_manager(task_file, fake_provider, clock):
    """Factory returning a fresh TaskManager over the same task file."""

    def _open():
        return build_task_manager(
            AtomizeConfig(),
            storage=JsonFileStorageAdapter(task_file),
            provider=fake_provider,
            clock=clock,
        )

    return _open
