"""Signed URL issuance for stored media."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from ..config import get_settings
from ..models import User
from ..schemas import SignedUrlRequest, SignedUrlResponse
from ..services import create_signed_url, get_current_user

router = APIRouter(prefix="/storage", tags=["storage"])


@router.post("/sign", response_model=SignedUrlResponse)
async def sign_object_url(
    payload: SignedUrlRequest,
    _: User = Depends(get_current_user),
) -> SignedUrlResponse:
    ttl = get_settings().signed_url_ttl_seconds
    url = await run_in_threadpool(create_signed_url, payload.bucket, payload.key, expires_in=ttl)
    return SignedUrlResponse(bucket=payload.bucket, key=payload.key, signed_url=url, expires_in=ttl)


__all__ = ["router"]
