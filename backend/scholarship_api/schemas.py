"""Pydantic request schemas used by the API.

One schema per resource body. Create schemas ignore unknown keys (only
the listed fields are copied into the document); update schemas reject
them so a PATCH can only touch known fields. `_id` and `createdAt` are
never accepted on update.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


Role = Literal["student", "moderator", "admin"]
ApplicationStatus = Literal["pending", "processing", "completed", "rejected"]
ApplicationPayment = Literal["unpaid", "paid"]


class _CreateBody(BaseModel):
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)


class _UpdateBody(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)


class TokenRequest(BaseModel):
    """Payload for `POST /jwt`. The email is checked by the handler."""
    email: Optional[EmailStr] = None


class UserIn(_CreateBody):
    name: Optional[str] = None
    email: EmailStr
    photoURL: Optional[str] = None
    createdAt: Optional[datetime] = None


class RoleUpdate(BaseModel):
    role: Role


class ScholarshipIn(_CreateBody):
    scholarshipName: str = Field(..., min_length=1)
    universityName: str = Field(..., min_length=1)
    image: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    worldRank: Optional[int] = Field(default=None, ge=1)
    subjectCategory: Optional[str] = None
    scholarshipCategory: Optional[str] = None
    degree: Optional[str] = None
    tuitionFees: Optional[float] = Field(default=None, ge=0)
    applicationFees: Optional[float] = Field(default=None, ge=0)
    serviceCharge: Optional[float] = Field(default=None, ge=0)
    deadline: Optional[str] = None


class ScholarshipUpdate(_UpdateBody):
    """Partial scholarship; every field optional."""
    scholarshipName: Optional[str] = Field(default=None, min_length=1)
    universityName: Optional[str] = Field(default=None, min_length=1)
    image: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    worldRank: Optional[int] = Field(default=None, ge=1)
    subjectCategory: Optional[str] = None
    scholarshipCategory: Optional[str] = None
    degree: Optional[str] = None
    tuitionFees: Optional[float] = Field(default=None, ge=0)
    applicationFees: Optional[float] = Field(default=None, ge=0)
    serviceCharge: Optional[float] = Field(default=None, ge=0)
    deadline: Optional[str] = None


class ApplicationIn(_CreateBody):
    studentEmail: EmailStr
    studentName: Optional[str] = None
    universityName: str = Field(..., min_length=1)
    scholarshipName: str = Field(..., min_length=1)
    scholarshipId: Optional[str] = None
    applicationFees: Optional[float] = Field(default=None, ge=0)
    universityAddress: Optional[str] = None


class ApplicationUpdate(_UpdateBody):
    """Only status and payment may change after submission."""
    status: Optional[ApplicationStatus] = None
    payment: Optional[ApplicationPayment] = None


class ReviewIn(_CreateBody):
    userName: Optional[str] = None
    userEmail: EmailStr
    scholarshipName: Optional[str] = None
    universityName: Optional[str] = None
    userPhotoURL: Optional[str] = None
    comment: str = Field(..., min_length=1)
    rating: float = Field(..., ge=0, le=5)
    scholarshipId: str = Field(..., min_length=1)


class ReviewUpdate(_UpdateBody):
    userName: Optional[str] = None
    scholarshipName: Optional[str] = None
    universityName: Optional[str] = None
    userPhotoURL: Optional[str] = None
    comment: Optional[str] = Field(default=None, min_length=1)
    rating: Optional[float] = Field(default=None, ge=0, le=5)


class PaymentIntentIn(BaseModel):
    """Payload for `POST /create-payment-intent`; amount is in major units."""
    model_config = ConfigDict(allow_inf_nan=False)

    amount: Optional[float] = None


class PaymentIn(_CreateBody):
    userEmail: EmailStr
    userName: Optional[str] = None
    scholarshipId: str = Field(..., min_length=1)
    scholarshipName: Optional[str] = None
    amount: float = Field(..., gt=0)
    transactionId: str = Field(..., min_length=1)
    paymentMethod: Optional[str] = None
