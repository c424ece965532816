"""
Shared fixtures: every test gets its own SQLite file and a fresh service graph.
"""

import pytest

from src.core import config
from src.core.config import ConfigurationService
from src.core.context import Context
from src.workflow.factory import build_services


@pytest.fixture
def temp_db(tmp_path):
    """Point the stores at a temporary database for the duration of a test."""
    original_value = config.DB_PATH
    config.DB_PATH = str(tmp_path / "workflow.db")
    yield config.DB_PATH
    config.DB_PATH = original_value


@pytest.fixture
def configuration():
    return ConfigurationService()


@pytest.fixture
def services(temp_db, configuration):
    return build_services(configuration)


@pytest.fixture
def admin_context():
    return Context(admin=True)


@pytest.fixture
def submitter(services):
    return services.identity.create_person("submitter@example.org", "Sam Submitter")


@pytest.fixture
def reviewers(services):
    return [
        services.identity.create_person("ana@example.org", "Ana"),
        services.identity.create_person("bruno@example.org", "Bruno"),
        services.identity.create_person("carla@example.org", "Carla"),
    ]


@pytest.fixture
def submitter_context(submitter):
    return Context(current_user=submitter)
