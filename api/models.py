"""
Pydantic models for strict type validation of API payloads.
"""
from typing import List, Optional, Dict, Tuple
from pydantic import BaseModel, Field
from datetime import datetime


class GraphRequest(BaseModel):
    """Declarative causal graph: one `effect ~ cause1 + cause2` formula per effect"""
    formulas: List[str] = Field(..., min_length=1, description="Formula declarations")
    exposure: Optional[str] = Field(default=None, description="Exposure (treatment) node")
    outcome: Optional[str] = Field(default=None, description="Outcome node")
    labels: Dict[str, str] = Field(default_factory=dict, description="Display labels by node id")
    coords: Dict[str, Tuple[float, float]] = Field(
        default_factory=dict,
        description="Display (x, y) coordinates by node id"
    )
    unobserved: List[str] = Field(default_factory=list, description="Nodes that cannot be measured")


class PathsRequest(GraphRequest):
    """Path enumeration request"""
    conditioned: List[str] = Field(default_factory=list, description="Conditioning set")
    open_only: bool = Field(default=False, description="Only return open paths")


class TripleModel(BaseModel):
    x: str
    q: str
    y: str
    kind: str = Field(..., description="fork, chain or collider")


class PathModel(BaseModel):
    """Single exposure-outcome path"""
    nodes: List[str]
    text: str = Field(..., description="Rendered path, e.g. 'x <- q -> y'")
    kind: str = Field(..., description="causal or backdoor")
    is_open: bool
    enters_exposure: bool
    colliders: List[str] = Field(default_factory=list)
    triples: List[TripleModel] = Field(default_factory=list)


class PathsResponse(BaseModel):
    exposure: str
    outcome: str
    conditioned: List[str] = Field(default_factory=list)
    paths: List[PathModel] = Field(default_factory=list)
    processing_time_ms: float


class AdjustmentSetsResponse(BaseModel):
    exposure: str
    outcome: str
    adjustment_sets: List[List[str]] = Field(
        default_factory=list,
        description="Minimal adjustment sets; [[]] means no adjustment needed"
    )
    processing_time_ms: float


class VariableAdviceModel(BaseModel):
    node_id: str
    category: str
    should_adjust: bool
    reason: str


class VariablesResponse(BaseModel):
    exposure: str
    outcome: str
    identifiable: bool = Field(..., description="False when no valid adjustment set exists")
    adjustment_sets: List[List[str]] = Field(default_factory=list)
    variables: List[VariableAdviceModel] = Field(default_factory=list)


class HealthStatus(BaseModel):
    """System health check response"""
    status: str = Field(..., description="healthy or degraded")
    components: Dict[str, bool] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    version: str = Field(default="1.0.0")
