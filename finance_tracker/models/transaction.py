from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal
from typing_extensions import Self

from finance_tracker.db.core import TransactionType, PaymentMethod, RecurringFrequency


# ===== SHARED VALIDATORS =====

def clean_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    """Strip tags, drop blanks and duplicates while keeping first-seen order."""
    if tags is None:
        return tags
    cleaned = []
    for tag in tags:
        tag = tag.strip()
        if not tag:
            continue
        if len(tag) > 20:
            raise ValueError("Tag cannot be more than 20 characters")
        if tag not in cleaned:
            cleaned.append(tag)
    return cleaned


def round_positive_amount(v: Optional[Decimal]) -> Optional[Decimal]:
    """Round to cents; the rounded value must still be positive."""
    if v is None:
        return v
    v = round(v, 2)
    if v <= 0:
        raise ValueError("Amount must be at least 0.01")
    return v


def require_text(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Field cannot be blank")
    return v


# ===== TRANSACTION PYDANTIC MODELS =====

class RecurringPattern(BaseModel):
    frequency: RecurringFrequency
    interval: int = Field(1, ge=1)
    end_date: Optional[date] = None
    next_due_date: Optional[date] = None


class TransactionCreate(BaseModel):
    type: TransactionType = Field(..., description="income or expense")
    amount: Decimal = Field(..., gt=0, description="Transaction amount, always positive")
    description: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=50)
    subcategory: Optional[str] = Field(None, max_length=50)
    transaction_date: Optional[date] = Field(None, description="Defaults to today")
    payment_method: PaymentMethod = Field(default=PaymentMethod.CASH)
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=500)
    is_recurring: bool = False
    recurring_pattern: Optional[RecurringPattern] = None
    is_verified: bool = False

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return round_positive_amount(v)

    @field_validator('description', 'category')
    @classmethod
    def validate_required_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Field cannot be blank')
        return v

    @field_validator('subcategory')
    @classmethod
    def validate_subcategory(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        return clean_tags(v)

    @model_validator(mode="after")
    def check_recurring_pattern(self) -> Self:
        if self.is_recurring and self.recurring_pattern is None:
            raise ValueError("recurring_pattern is required for recurring transactions")
        return self


class TransactionUpdate(BaseModel):
    """Update transaction - all fields optional, owner is never writable"""
    type: Optional[TransactionType] = None
    amount: Optional[Decimal] = Field(None, gt=0)
    description: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    subcategory: Optional[str] = Field(None, max_length=50)
    transaction_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = Field(None, max_length=500)
    is_recurring: Optional[bool] = None
    recurring_pattern: Optional[RecurringPattern] = None
    is_verified: Optional[bool] = None

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return round_positive_amount(v)

    @field_validator('description', 'category')
    @classmethod
    def validate_required_text(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError('Field cannot be blank')
        return v

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return clean_tags(v)


class TransactionResponse(BaseModel):
    """Transaction data returned to client"""
    id: int
    user_id: int
    type: TransactionType
    amount: Decimal
    description: str
    category: str
    subcategory: Optional[str]
    transaction_date: date
    payment_method: PaymentMethod
    tags: List[str]
    notes: Optional[str]
    is_recurring: bool
    recurring_pattern: Optional[RecurringPattern]
    is_verified: bool
    verified_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TransactionFilter(BaseModel):
    """Filter parameters for transaction queries"""
    type: Optional[TransactionType] = None
    category: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: Optional[str] = None


# ===== AGGREGATE MODELS =====

class TypeTotal(BaseModel):
    total: Decimal = Decimal("0")
    count: int = 0


class TransactionSummary(BaseModel):
    income: TypeTotal
    expense: TypeTotal
    net_income: Decimal


class CategoryTotal(BaseModel):
    category: str
    total: Decimal
    count: int


class MonthlyTrend(BaseModel):
    year: int
    month: int
    month_start: date
    income: Decimal
    expenses: Decimal
    net_income: Decimal

