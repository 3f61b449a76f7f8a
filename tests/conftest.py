"""
Shared pytest fixtures for record optimizer tests.

Provides reusable records, settings and rule sets to avoid duplication
across test files.
"""

import pytest

from record_optimizer import OptimizerSettings, Optimizer, RuleSet, get_settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Drop cached settings so environment changes in a test stay isolated."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def settings():
    """Settings with default values, ignoring any local .env file."""
    return OptimizerSettings(_env_file=None)


@pytest.fixture
def rule_set(settings):
    """Empty RuleSet bound to default settings."""
    return RuleSet(settings=settings)


@pytest.fixture
def optimizer(settings):
    """Optimizer bound to default settings."""
    return Optimizer(settings=settings)


# =============================================================================
# Record Fixtures
# =============================================================================

@pytest.fixture
def person_record():
    """Single person row as fetched from a database."""
    return {"name": "John Doe", "age": "25", "city": "New York"}


@pytest.fixture
def people_records(person_record):
    """Several person rows with slightly different field sets."""
    return [
        person_record,
        {"name": "Jane Roe", "age": "31", "city": "Boston", "role": "admin"},
        {"name": "Max Mustermann", "age": "n/a", "city": "Berlin"},
    ]


@pytest.fixture
def article_records():
    """Rows holding markup, JSON and date strings."""
    return [
        {
            "id": "1",
            "title": "Hello World!",
            "body": "<p>Intro <b>bold</b></p>",
            "tags": '["python", "data"]',
            "meta": '{"views": 10, "draft": false}',
            "published_at": "2024-03-05 14:07:00",
        },
        {
            "id": "2",
            "title": "  Second   Post ",
            "body": "plain text",
            "tags": "not json",
            "meta": "",
            "published_at": "yesterday",
        },
    ]
