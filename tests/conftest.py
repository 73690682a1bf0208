import pytest

from ticket_agent.config import Settings
from ticket_agent.cost import CostTracker
from ticket_agent.models import Requirements
from ticket_agent.storage import ProjectStore

from stubs import requirements_payload


@pytest.fixture
def settings(tmp_path):
    """Mock-mode settings with an isolated data directory."""
    return Settings(mode="mock", data_dir=tmp_path / "projects")


@pytest.fixture
def store(settings):
    return ProjectStore(settings.data_dir)


@pytest.fixture
def tracker():
    return CostTracker(model="gpt-4")


@pytest.fixture
def requirements():
    return Requirements.from_dict(requirements_payload())
