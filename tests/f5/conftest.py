"""Fixtures for F5 tests - catalogue, service and CLI."""

import pytest

from standing.config.app_config import AppConfig, clear_config_cache
from standing.core.access import Operator, Role
from standing.core.progression import ProgressionContext, ProgressionService


@pytest.fixture(autouse=True)
def _fresh_config():
    """Each test starts without a cached config."""
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def context(data_dir) -> ProgressionContext:
    """Context on the sample data directory, acting as the system admin."""
    return ProgressionContext(data_dir=data_dir, config=AppConfig())


@pytest.fixture
def service(context) -> ProgressionService:
    return ProgressionService(context)


@pytest.fixture
def officer_service(data_dir) -> ProgressionService:
    """Service acting as an academic officer."""
    operator = Operator(username="officer1", role=Role.OFFICER)
    return ProgressionService(ProgressionContext(data_dir=data_dir, operator=operator))


@pytest.fixture
def inactive_service(data_dir) -> ProgressionService:
    """Service acting as a deactivated account."""
    operator = Operator(username="former", role=Role.ADMIN, active=False)
    return ProgressionService(ProgressionContext(data_dir=data_dir, operator=operator))
