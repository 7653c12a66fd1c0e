"""Pydantic schemas for the public API.

Field aliases keep the camelCase and Portuguese keys existing clients send
and expect.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(ApiModel):
    success: Literal[False] = False
    error: str


class ConfigResponse(ApiModel):
    success: bool = True
    stripe_public_key: Optional[str] = Field(default=None, alias="stripePublicKey")


class EmailRequest(ApiModel):
    email: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        candidate = str(value).strip()
        return candidate or None


class CreateCustomerResponse(ApiModel):
    success: bool = True
    customer_id: str = Field(alias="customerId")


class VerifyUserResponse(ApiModel):
    success: bool = True
    exists: bool
    status: Optional[str] = None
    customer_id: Optional[str] = Field(default=None, alias="customerId")


class UserInfo(ApiModel):
    email: str
    nome: str
    status: str
    plano: Optional[str] = None
    data_assinatura: Optional[datetime] = Field(default=None, alias="dataAssinatura")
    data_renovacao: Optional[datetime] = Field(default=None, alias="dataRenovacao")


class UserInfoResponse(ApiModel):
    success: bool = True
    user: UserInfo


class ApiKeyResponse(ApiModel):
    success: bool = True
    api_key: str = Field(alias="apiKey")


class SubscriptionSummary(ApiModel):
    id: str
    status: Optional[str] = None
    plan: Optional[str] = None
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None
    cancel_at_period_end: bool = False


class SubscriptionResponse(ApiModel):
    success: bool = True
    subscription: Optional[SubscriptionSummary] = None


class CheckoutSessionRequest(ApiModel):
    plan_id: Optional[str] = Field(default=None, alias="planId")
    email: Optional[str] = None

    @field_validator("plan_id", "email", mode="before")
    @classmethod
    def strip_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        candidate = str(value).strip()
        return candidate or None


class CheckoutSessionResponse(ApiModel):
    success: bool = True
    session_id: str = Field(alias="sessionId")


class WebhookAck(ApiModel):
    status: str = "success"
