"""Shared pytest fixtures for stubdb tests."""

from pathlib import Path

import pytest
from dotenv import load_dotenv
from hypothesis import settings

from stubdb.core.config import StubDbConfig
from stubdb.scanner.declarations import StubScanner
from stubdb.services.build_service import BuildResult, BuildService

# Load environment variables from .env file
load_dotenv()

# Configure hypothesis for property-based testing
settings.register_profile("ci", max_examples=100, deadline=None)
settings.register_profile("dev", max_examples=20, deadline=None)
settings.load_profile("dev")

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def stub_config() -> StubDbConfig:
    """Default configuration, independent of the environment."""
    return StubDbConfig(_env_file=None)


@pytest.fixture
def scanner() -> StubScanner:
    return StubScanner()


@pytest.fixture
def stubs_path() -> Path:
    return FIXTURES / "stubs"


@pytest.fixture
def build_sources(stub_config: StubDbConfig):
    """Build a database from ``{file name: source}`` pairs."""

    def build(sources: dict[str, str], config: StubDbConfig | None = None) -> BuildResult:
        return BuildService(config or stub_config).build_sources(sources)

    return build


@pytest.fixture(scope="session")
def fixture_build() -> BuildResult:
    """The database built from the bundled stub fixtures."""
    return BuildService(StubDbConfig(_env_file=None)).build_directory(FIXTURES / "stubs")


@pytest.fixture
def broken_path() -> Path:
    """Stubs with malformed declarations next to valid ones."""
    return FIXTURES / "broken"
