"""Atomize Test Suite

Test organization:
- unit/: Unit tests for individual modules
  - tasks/: Date parser, priority, atomizer, store, manager, plan, progress
  - storage/: Memory, JSON file and SQLite backends
  - llm/: Provider adapters and structured output parsing
  - test_cli.py, test_config.py, test_notifications.py, test_responses.py
- integration/: Task lifecycle against a real JSON task file

Running tests:
    # All tests
    pytest

    # Specific module
    pytest tests/unit/tasks/

    # Skip the integration suite
    pytest tests/unit
"""
