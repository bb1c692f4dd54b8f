"""
Pydantic schemas for the ingredient resolution pipeline.

Reference records come from the external search collaborator, processed
ingredients are the pipeline output. Both are immutable once built.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class IngredientCategory(str, Enum):
    """Fixed ingredient taxonomy."""
    VEGETABLES = "vegetables"
    FRUITS = "fruits"
    DAIRY = "dairy"
    MEAT = "meat"
    GRAINS = "grains"
    LEGUMES = "legumes"
    HERBS = "herbs"
    SPICES = "spices"
    OTHER = "other"


class ReferenceFood(BaseModel):
    """Candidate record returned by the reference food search."""
    model_config = ConfigDict(frozen=True)

    id: Union[int, str]
    description: str
    category_hint: Optional[str] = None
    relevance_score: Optional[float] = None
    data_type: Optional[str] = None

    @classmethod
    def from_fdc(cls, payload: Dict[str, Any]) -> "ReferenceFood":
        """
        Build from one entry of a FoodData Central `foods/search` response.

        Args:
            payload: Raw food dict (fdcId, description, foodCategory, score, dataType)

        Returns:
            ReferenceFood
        """
        return cls(
            id=payload["fdcId"],
            description=payload.get("description") or "",
            category_hint=payload.get("foodCategory"),
            relevance_score=payload.get("score"),
            data_type=payload.get("dataType"),
        )


@dataclass
class MatchCandidate:
    """A reference food paired with its adjusted similarity for one query."""
    food: ReferenceFood
    base_similarity: float
    adjusted_similarity: float


class ProcessedIngredient(BaseModel):
    """Resolved ingredient - the unit of pipeline output."""
    model_config = ConfigDict(frozen=True)

    name: str
    category: IngredientCategory
    confidence: float = Field(ge=0.0, le=0.95)
    source: Literal["matched"] = "matched"
    reference_id: Union[int, str]

    # Provenance
    query: Optional[str] = None
    description: Optional[str] = None
    data_type: Optional[str] = None


class LabelOutcome(str, Enum):
    """Terminal outcome of matching one label."""
    MATCHED = "matched"
    NO_MATCH = "no_match"
    SEARCH_FAILED = "search_failed"
    AUTH_FAILED = "auth_failed"


class LabelTrace(BaseModel):
    """Per-label telemetry for one pipeline run."""
    label: str
    outcome: LabelOutcome
    queries_tried: List[str] = Field(default_factory=list)
    matched_description: Optional[str] = None
    adjusted_score: Optional[float] = None
    error: Optional[str] = None


class AnalysisResult(BaseModel):
    """Complete analysis result with telemetry and config version."""
    ingredients: List[ProcessedIngredient] = Field(default_factory=list)
    traces: List[LabelTrace] = Field(default_factory=list)
    filtered_labels: List[str] = Field(default_factory=list)
    rejected_labels: List[str] = Field(default_factory=list)
    config_version: str = "configs@unknown"


class HealthStatus(BaseModel):
    """Reachability of the two external collaborators."""
    recognize_api: bool
    reference_search: bool
    overall: bool
