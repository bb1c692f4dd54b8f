"""
Configuration loader for the ingredient pipeline.

Loads the packaged YAML configs, applies environment overrides and computes a
deterministic fingerprint for drift detection. Secrets (the API key) are
never part of the fingerprint.
"""
import hashlib
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union

import yaml
from dotenv import load_dotenv

from .categorizer import Categorizer
from .label_filter import DEFAULT_DENYLIST, DEFAULT_MIN_LENGTH, LabelFilter
from .scoring import ScoringWeights

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path(__file__).parent / "configs"

REQUIRED_FILES = {
    "matching": "matching.yml",
    "pipeline": "pipeline.yml",
}
OPTIONAL_FILES = {
    "label_filter": "label_filter.yml",
    "categories": "categories.yml",
}

# env var -> (section path in pipeline.yml, parser)
ENV_OVERRIDES: Dict[str, Tuple[Tuple[str, str], Callable[[str], Any]]] = {
    "RECOGNIZE_API_URL": (("recognition", "base_url"), str),
    "USDA_API_BASE_URL": (("reference_search", "base_url"), str),
    "VISION_MAX_RESULTS": (("results", "max_results"), int),
    "MATCH_BATCH_SIZE": (("batch", "size"), int),
    "MATCH_BATCH_DELAY_MS": (("batch", "delay_ms"), int),
}


@dataclass
class PipelineConfig:
    """Resolved configuration with version tracking."""
    weights: ScoringWeights
    denylist: Tuple[str, ...]
    min_length: int
    categories: Dict[str, Any]

    # Batching / results
    batch_size: int
    batch_delay_s: float
    max_results: int
    search_default_limit: int

    # Reference search
    usda_api_base_url: str
    data_types: Tuple[str, ...]
    match_page_size: int
    search_page_size_cap: int
    match_timeout_s: float
    search_timeout_s: float

    # Recognition
    recognize_api_url: str
    recognize_timeout_s: float

    config_version: str
    config_fingerprint: str
    config_source: str = "external"
    usda_api_key: str = field(default="DEMO_KEY", repr=False)

    def label_filter(self) -> LabelFilter:
        return LabelFilter(denylist=self.denylist, min_length=self.min_length)

    def categorizer(self) -> Categorizer:
        return Categorizer.from_config(self.categories)


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file."""
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _apply_env_overrides(pipeline: Dict[str, Any]) -> Dict[str, Any]:
    """
    Overlay environment knobs onto the pipeline.yml mapping.

    Raises:
        ValueError: If a numeric variable does not parse
    """
    applied = {}
    for var, ((section, key), parse) in ENV_OVERRIDES.items():
        raw = os.getenv(var)
        if raw is None or raw.strip() == "":
            continue
        try:
            value = parse(raw.strip())
        except ValueError as exc:
            raise ValueError(f"Invalid value for {var}: {raw!r}") from exc
        if parse is int and value < 0:
            raise ValueError(f"Invalid value for {var}: {raw!r} (must be >= 0)")
        pipeline.setdefault(section, {})[key] = value
        applied[var] = value
    if applied:
        logger.debug(f"[PIPELINE] Environment overrides: {sorted(applied)}")
    return applied


def load_pipeline_config(root: Optional[Union[str, Path]] = None) -> PipelineConfig:
    """
    Load all pipeline configs from a directory and compute a version fingerprint.

    Args:
        root: Path to configs directory (default: packaged configs)

    Returns:
        PipelineConfig with environment overrides applied

    Raises:
        FileNotFoundError: If required config files are missing
        ValueError: If an environment override is malformed
    """
    load_dotenv()
    root_path = Path(root) if root is not None else DEFAULT_CONFIG_DIR

    data: Dict[str, Dict[str, Any]] = {}
    for key, name in REQUIRED_FILES.items():
        path = root_path / name
        if not path.exists():
            raise FileNotFoundError(f"Required config file not found: {path}")
        data[key] = _load_yaml(path)
    for key, name in OPTIONAL_FILES.items():
        path = root_path / name
        data[key] = _load_yaml(path) if path.exists() else {}

    overrides = _apply_env_overrides(data["pipeline"])

    # Sort keys to ensure stability across reordered YAML
    blob = json.dumps({"configs": data, "overrides": overrides}, sort_keys=True).encode("utf-8")
    fingerprint = hashlib.sha256(blob).hexdigest()[:12]

    pipeline = data["pipeline"]
    batch = pipeline.get("batch", {})
    results = pipeline.get("results", {})
    search = pipeline.get("reference_search", {})
    recognition = pipeline.get("recognition", {})
    label_filter = data["label_filter"]

    denylist = label_filter.get("denylist")
    config = PipelineConfig(
        weights=ScoringWeights.from_dict(data["matching"].get("weights")),
        denylist=tuple(denylist) if denylist is not None else DEFAULT_DENYLIST,
        min_length=int(label_filter.get("min_length", DEFAULT_MIN_LENGTH)),
        categories=data["categories"],
        batch_size=max(1, int(batch.get("size", 5))),
        batch_delay_s=int(batch.get("delay_ms", 100)) / 1000.0,
        max_results=int(results.get("max_results", 12)),
        search_default_limit=int(results.get("search_default_limit", 20)),
        usda_api_base_url=search.get("base_url", "https://api.nal.usda.gov/fdc/v1"),
        data_types=tuple(search.get("data_types", ("Foundation", "SR Legacy", "Survey (FNDDS)"))),
        match_page_size=int(search.get("match_page_size", 25)),
        search_page_size_cap=int(search.get("search_page_size_cap", 50)),
        match_timeout_s=float(search.get("match_timeout_s", 5)),
        search_timeout_s=float(search.get("search_timeout_s", 8)),
        recognize_api_url=recognition.get("base_url", "http://localhost:8000"),
        recognize_timeout_s=float(recognition.get("timeout_s", 15)),
        config_version=f"configs@{fingerprint}",
        config_fingerprint=fingerprint,
        config_source="external" if root is not None else "packaged",
        usda_api_key=os.getenv("USDA_API_KEY") or "DEMO_KEY",
    )

    logger.info(f"[PIPELINE] Loaded {config.config_version} from {root_path}")
    return config


__all__ = ["PipelineConfig", "load_pipeline_config"]
