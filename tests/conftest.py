"""
Pytest configuration for ingredient pipeline tests.
"""
import dataclasses
import sys
from pathlib import Path

import pytest

# Add repo root to path for imports
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))

from ingredient_pipeline.config_loader import ENV_OVERRIDES, load_pipeline_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer environment overrides out of the tests."""
    for var in list(ENV_OVERRIDES) + ["USDA_API_KEY"]:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def configs_path():
    return repo_root / "ingredient_pipeline" / "configs"


@pytest.fixture
def config(configs_path):
    """Packaged config with inter-batch pacing disabled."""
    cfg = load_pipeline_config(configs_path)
    return dataclasses.replace(cfg, batch_delay_s=0.0)
