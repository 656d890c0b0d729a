"""Pydantic models for API requests and responses"""
from datetime import datetime
from typing import Optional, List, Dict, Literal
from pydantic import BaseModel, ConfigDict, Field

ResultStatusValue = Literal["valid", "nm", "dns", "dnf", "dq"]
ResultTypeValue = Literal["competition", "training"]
ISO_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class ResultCreate(BaseModel):
    athlete_id: int = Field(..., description="Athlete the result belongs to")
    discipline_id: int = Field(..., description="Discipline catalog id")
    date: str = Field(..., pattern=ISO_DATE_PATTERN, description="ISO date YYYY-MM-DD")
    value: float = Field(..., description="Time in seconds or distance/height in meters")
    result_type: ResultTypeValue = Field("competition", description="competition or training")
    competition_name: Optional[str] = Field(None, max_length=200)
    location: Optional[str] = Field(None, max_length=200)
    placement: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = None
    wind: Optional[float] = Field(None, description="Wind reading in m/s")
    status: Optional[ResultStatusValue] = Field("valid", description="Result status")
    equipment_weight: Optional[float] = Field(None, gt=0, description="Implement weight in kg (throws)")
    hurdle_height: Optional[int] = Field(None, gt=0, description="Hurdle height in cm (hurdles)")
    hurdle_spacing: Optional[float] = Field(None, gt=0)
    is_national_record: bool = Field(False, description="Externally asserted national record")


class ResultUpdate(BaseModel):
    """Partial update; only fields that are sent are changed."""
    athlete_id: Optional[int] = None
    discipline_id: Optional[int] = None
    date: Optional[str] = Field(None, pattern=ISO_DATE_PATTERN)
    value: Optional[float] = None
    result_type: Optional[ResultTypeValue] = None
    competition_name: Optional[str] = Field(None, max_length=200)
    location: Optional[str] = Field(None, max_length=200)
    placement: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = None
    wind: Optional[float] = None
    status: Optional[ResultStatusValue] = None
    equipment_weight: Optional[float] = Field(None, gt=0)
    hurdle_height: Optional[int] = Field(None, gt=0)
    hurdle_spacing: Optional[float] = Field(None, gt=0)
    is_national_record: Optional[bool] = None


class ResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    athlete_id: int
    discipline_id: int
    date: str
    value: float
    result_type: str
    competition_name: Optional[str] = None
    location: Optional[str] = None
    placement: Optional[int] = None
    notes: Optional[str] = None
    wind: Optional[float] = None
    status: Optional[str] = None
    equipment_weight: Optional[float] = None
    hurdle_height: Optional[int] = None
    hurdle_spacing: Optional[float] = None
    is_personal_best: bool
    is_season_best: bool
    is_national_record: bool
    created_at: Optional[datetime] = None


class DisciplineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    full_name: str
    category: str
    unit: str
    lower_is_better: bool
    wind_sensitive: bool


class RecordCheckResponse(BaseModel):
    athlete_id: int
    discipline_id: int
    value: float
    year: Optional[int] = None
    is_record: bool = Field(..., description="Whether the value would beat the current best")


class RecalculateRequest(BaseModel):
    athlete_id: int
    discipline_id: Optional[int] = Field(None, description="Omit to rebuild every partition of the athlete")
    equipment_weight: Optional[float] = Field(None, gt=0)
    hurdle_height: Optional[int] = Field(None, gt=0)


class RecalculationResponse(BaseModel):
    athlete_id: int
    discipline_id: int
    partition: str
    cleared: int
    personal_best_id: Optional[int] = None
    season_best_ids: Dict[str, int] = Field(default_factory=dict)


class RecalculationListResponse(BaseModel):
    partitions: List[RecalculationResponse]


class DeleteResponse(BaseModel):
    deleted: bool


class HealthResponse(BaseModel):
    status: str
    database_connected: bool
    partition_locking_enabled: bool
