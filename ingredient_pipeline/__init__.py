"""
Ingredient resolution pipeline.

Turns noisy image-recognition labels into canonical, confidence-scored
ingredients matched against USDA FoodData Central.
"""
from .config_loader import PipelineConfig, load_pipeline_config
from .errors import AuthFailure, PipelineError, RecognitionFailure, SearchFailure
from .run import IngredientPipeline
from .schemas import (
    AnalysisResult,
    HealthStatus,
    IngredientCategory,
    LabelOutcome,
    LabelTrace,
    ProcessedIngredient,
    ReferenceFood,
)

__version__ = "1.0.0"

__all__ = [
    "AnalysisResult",
    "AuthFailure",
    "HealthStatus",
    "IngredientCategory",
    "IngredientPipeline",
    "LabelOutcome",
    "LabelTrace",
    "PipelineConfig",
    "PipelineError",
    "ProcessedIngredient",
    "RecognitionFailure",
    "ReferenceFood",
    "SearchFailure",
    "load_pipeline_config",
]
