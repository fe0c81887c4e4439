# fraudscore/schemas/health_schemas.py
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel

# Collaborator outages only degrade scoring, they never stop it
ComponentState = Literal["operational", "degraded_performance"]
ComponentName = Literal["database", "cache", "device_intel"]


class ComponentStatus(BaseModel):
    status: ComponentState
    feeds: List[str]  # heuristics that fall back to no-data defaults while this is down
    detail: Optional[str] = None
    last_success: Optional[str] = None


class ScoringStatus(BaseModel):
    indicator: ComponentState
    description: str


class ServiceInfo(BaseModel):
    name: str
    version: str
    model_version: str
    time: str


class HealthResponse(BaseModel):
    service: ServiceInfo
    scoring: ScoringStatus
    components: Dict[ComponentName, ComponentStatus]
