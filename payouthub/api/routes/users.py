"""Read-only lookups over the billing user store."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...db import DatabaseClient, UserRecord
from ...exceptions import ValidationError
from ..dependencies import get_authenticated_user, get_database
from ..schemas import ApiKeyResponse, EmailRequest, UserInfo, UserInfoResponse, VerifyUserResponse

router = APIRouter()


def _require_email(email: Optional[str]) -> str:
    candidate = (email or "").strip()
    if not candidate:
        raise ValidationError("Email não fornecido")
    return candidate


def _user_info(record: UserRecord) -> UserInfo:
    return UserInfo(
        email=record.email,
        nome=record.display_name,
        status=record.status.value,
        plano=record.plan,
        data_assinatura=record.subscribed_at,
        data_renovacao=record.renews_at,
    )


@router.post("/api/verify-user", response_model=VerifyUserResponse, response_model_exclude_none=True)
def verify_user(payload: EmailRequest, db: DatabaseClient = Depends(get_database)) -> VerifyUserResponse:
    email = _require_email(payload.email)
    record = db.get_user_by_email(email)
    if record is None:
        return VerifyUserResponse(exists=False)
    return VerifyUserResponse(
        exists=True,
        status=record.status.value,
        customer_id=record.external_customer_id,
    )


@router.get("/api/user-info", response_model=UserInfoResponse)
def get_user_info(
    email: Optional[str] = Query(None),
    db: DatabaseClient = Depends(get_database),
) -> UserInfoResponse:
    record = db.get_user_by_email(_require_email(email))
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Usuário não encontrado")
    return UserInfoResponse(user=_user_info(record))


@router.get("/api/user/api-key", response_model=ApiKeyResponse)
def get_api_key(
    email: Optional[str] = Query(None),
    db: DatabaseClient = Depends(get_database),
) -> ApiKeyResponse:
    record = db.get_user_by_email(_require_email(email))
    if record is None or not record.access_token:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="API Key não encontrada")
    return ApiKeyResponse(api_key=record.access_token)


@router.get("/api/user/me", response_model=UserInfoResponse)
def get_current_user(user: UserRecord = Depends(get_authenticated_user)) -> UserInfoResponse:
    return UserInfoResponse(user=_user_info(user))


__all__ = ["router"]
