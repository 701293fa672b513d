from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal
from typing_extensions import Self

from finance_tracker.db.core import BudgetPeriod
from finance_tracker.models.transaction import clean_tags, require_text, round_positive_amount
from finance_tracker.services.derivation import budget_status, budget_time_remaining

# ===== BUDGET PYDANTIC MODELS =====

class AlertThreshold(BaseModel):
    percentage: float = Field(..., ge=0, le=100, description="Percentage of the limit that triggers an alert")
    is_enabled: bool = True


class BudgetCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Budget name")
    description: Optional[str] = Field(None, max_length=500)
    category: str = Field(..., min_length=1, max_length=50, description="Expense category this budget tracks")
    amount: Decimal = Field(..., gt=0, description="Spending limit for the period")
    period: BudgetPeriod = Field(default=BudgetPeriod.MONTHLY)
    start_date: Optional[date] = Field(None, description="Budget start date, defaults to today")
    end_date: date = Field(..., description="Budget end date")
    is_active: bool = True
    alert_thresholds: List[AlertThreshold] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator('name', 'category')
    @classmethod
    def validate_required_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Field cannot be blank')
        return v

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return round_positive_amount(v)

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        return clean_tags(v)

    @model_validator(mode="after")
    def check_dates(self) -> Self:
        if self.start_date is not None and self.end_date <= self.start_date:
            raise ValueError('End date must be after start date')
        return self


class BudgetUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    amount: Optional[Decimal] = Field(None, gt=0)
    period: Optional[BudgetPeriod] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None
    alert_thresholds: Optional[List[AlertThreshold]] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator('name', 'category')
    @classmethod
    def validate_required_text(cls, v: Optional[str]) -> Optional[str]:
        return require_text(v)

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return round_positive_amount(v)

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return clean_tags(v)


class TimeRemaining(BaseModel):
    days: int
    status: str


class BudgetResponse(BaseModel):
    id: int
    user_id: int
    name: str
    description: Optional[str]
    category: str
    amount: Decimal
    period: BudgetPeriod
    start_date: date
    end_date: date
    is_active: bool
    alert_thresholds: List[AlertThreshold]
    tags: List[str]
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    # Derived, never stored
    status: Optional[str] = None
    time_remaining: Optional[TimeRemaining] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_record(cls, budget, today: date) -> "BudgetResponse":
        response = cls.model_validate(budget)
        response.status = budget_status(budget, today)
        response.time_remaining = TimeRemaining(**budget_time_remaining(budget, today))
        return response


class BudgetPerformance(BaseModel):
    """Spending against a single budget over its window"""
    budget: BudgetResponse
    total_spent: Decimal
    remaining: Decimal  # may be negative when over budget
    percentage: float  # display value, capped at 100
    actual_percentage: float  # uncapped
    is_over_budget: bool
    transactions: int
    triggered_alerts: List[float] = []
