from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal

from finance_tracker.db.core import GoalType, GoalPriority, ContributionSource
from finance_tracker.models.transaction import clean_tags, require_text, round_positive_amount
from finance_tracker.models.budget import TimeRemaining
from finance_tracker.services.derivation import (
    goal_progress,
    goal_status,
    goal_time_remaining,
    suggested_monthly_contribution,
)

HEX_COLOR_PATTERN = r'^#[0-9A-Fa-f]{6}$'

# ===== GOAL PYDANTIC MODELS =====

class MilestoneCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    target_amount: Decimal = Field(..., ge=0)
    is_completed: bool = False

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return v.strip()


class MilestoneResponse(BaseModel):
    position: int
    name: str
    target_amount: Decimal
    is_completed: bool
    completed_at: Optional[datetime]

    class Config:
        from_attributes = True


class MilestoneUpdate(BaseModel):
    is_completed: bool = True


class ContributionCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, description="Contribution amount, must be positive")
    description: Optional[str] = Field(None, max_length=200)
    source: ContributionSource = Field(default=ContributionSource.MANUAL)

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return round_positive_amount(v)

    @field_validator('description')
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class ContributionResponse(BaseModel):
    id: int
    amount: Decimal
    date: datetime
    description: Optional[str]
    source: ContributionSource

    class Config:
        from_attributes = True


class GoalCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    type: GoalType = Field(default=GoalType.SAVINGS)
    target_amount: Decimal = Field(..., gt=0)
    current_amount: Decimal = Field(Decimal("0"), ge=0)
    target_date: date = Field(..., description="Must be in the future at creation")
    start_date: Optional[date] = None
    priority: GoalPriority = Field(default=GoalPriority.MEDIUM)
    is_active: bool = True
    color: str = Field("#3B82F6", pattern=HEX_COLOR_PATTERN)
    icon: str = Field("fas fa-bullseye", max_length=50)
    milestones: List[MilestoneCreate] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Goal name is required')
        return v

    @field_validator('target_amount')
    @classmethod
    def validate_target_amount(cls, v: Decimal) -> Decimal:
        return round_positive_amount(v)

    @field_validator('current_amount')
    @classmethod
    def validate_current_amount(cls, v: Decimal) -> Decimal:
        return round(v, 2)

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        return clean_tags(v)


class GoalUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    type: Optional[GoalType] = None
    target_amount: Optional[Decimal] = Field(None, gt=0)
    current_amount: Optional[Decimal] = Field(None, ge=0)
    target_date: Optional[date] = None
    priority: Optional[GoalPriority] = None
    is_active: Optional[bool] = None
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    icon: Optional[str] = Field(None, max_length=50)
    milestones: Optional[List[MilestoneCreate]] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return require_text(v)

    @field_validator('target_amount')
    @classmethod
    def validate_target_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return round_positive_amount(v)

    @field_validator('current_amount')
    @classmethod
    def validate_current_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return round(v, 2) if v is not None else v

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return clean_tags(v)


class GoalProgress(BaseModel):
    percentage: float
    amount: Decimal
    target: Decimal
    remaining: Decimal


class GoalResponse(BaseModel):
    id: int
    user_id: int
    name: str
    description: Optional[str]
    type: GoalType
    target_amount: Decimal
    current_amount: Decimal
    target_date: date
    start_date: date
    priority: GoalPriority
    is_active: bool
    is_completed: bool
    completed_at: Optional[datetime]
    color: str
    icon: str
    tags: List[str]
    notes: Optional[str]
    milestones: List[MilestoneResponse] = []
    contributions: List[ContributionResponse] = []
    created_at: datetime
    updated_at: datetime

    # Derived, never stored
    progress: Optional[GoalProgress] = None
    status: Optional[str] = None
    time_remaining: Optional[TimeRemaining] = None
    suggested_monthly_contribution: Optional[Decimal] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_record(cls, goal, today: date) -> "GoalResponse":
        response = cls.model_validate(goal)
        response.progress = GoalProgress(**goal_progress(goal))
        response.status = goal_status(goal, today)
        response.time_remaining = TimeRemaining(**goal_time_remaining(goal, today))
        response.suggested_monthly_contribution = suggested_monthly_contribution(goal, today)
        return response


class GoalStats(BaseModel):
    total: int
    active: int
    completed: int
    overdue: int
    total_target_amount: Decimal
    total_current_amount: Decimal
    overall_progress: float
