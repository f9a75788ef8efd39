import pytest
import yaml

from slc.config import Settings, StatuslineConfig

FIXTURES = {
    "minimal": """
features: [directory, git]
theme: minimal
""",
    "detailed": """
features: [directory, git, model]
theme: detailed
colors: true
""",
    "compact": """
features: [model, directory, cpu, load]
theme: compact
custom_emojis: true
""",
    "system_monitoring": """
features: [directory, cpu, memory, load]
system_monitoring:
  refresh_rate: 10
  cpu_threshold: 90
  memory_threshold: 75
  load_threshold: 4.0
""",
    "all_features": """
features:
  - directory
  - git
  - model
  - cpu
  - memory
  - load
  - usage
  - session
  - tokens
  - burnrate
  - cache
  - projections
  - alerts
usage_integration: true
logging: true
""",
}


def load_fixture(name: str) -> StatuslineConfig:
    return StatuslineConfig.model_validate(yaml.safe_load(FIXTURES[name]))


@pytest.fixture
def settings(tmp_path):
    return Settings(cache_dir=tmp_path / "cache")


@pytest.fixture(params=sorted(FIXTURES))
def fixture_config(request):
    return load_fixture(request.param)


@pytest.fixture
def fixture_loader():
    return load_fixture
