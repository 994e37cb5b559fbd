from datetime import datetime
from typing import Dict, Optional
from pydantic import BaseModel, Field, ConfigDict

from .banner import ActionType, Variant


class ActionLogCreateModel(BaseModel):
    """Payload of the remote logging call. Serialized with camelCase keys."""

    test_id: str = Field(..., alias="testId", min_length=1)
    variant: Variant
    action_type: ActionType = Field(..., alias="actionType")
    visitor_id: str = Field(..., alias="visitorId", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class ActionLogResponseModel(BaseModel):
    success: bool
    log_id: Optional[str] = None


class ActionLogModel(BaseModel):
    """Data model for a recorded action log row."""

    log_id: str
    test_id: str
    variant: Variant
    action_type: ActionType
    visitor_id: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(from_attributes=True)


class VariantResultModel(BaseModel):
    views: int = Field(..., description="Distinct visitors that viewed this variant.")
    clicks: int = Field(..., description="Distinct visitors that clicked this variant's button.")
    click_through_rate: float


class AbTestResultsModel(BaseModel):
    test_id: str
    total_visitors: int
    variants: Dict[str, VariantResultModel]
