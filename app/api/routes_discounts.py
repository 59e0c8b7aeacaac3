"""
Voucher and coupon API routes
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.schemas.discount import (
    CouponValidateRequest,
    DiscountPreview,
    VoucherCreate,
    VoucherResponse,
    VoucherValidateRequest,
)
from app.services.voucher_service import VoucherService
from app.utils.responses import rate_limit_error
from app.utils.security import AuthContext, get_auth_context, get_client_ip, rate_limit_check

router = APIRouter()

def to_preview(code, discount) -> DiscountPreview:
    return DiscountPreview(
        code=code.code,
        discount_type=code.discount_type,
        discount_value=code.discount_value,
        discount_idr=discount,
    )

@router.post("/vouchers/validate", response_model=DiscountPreview)
def validate_voucher(
    request: Request,
    data: VoucherValidateRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """Check a voucher code for an event. Nothing is reserved."""
    # Rate limiting
    client_ip = get_client_ip(request)
    if not rate_limit_check(client_ip):
        return rate_limit_error()

    voucher, discount = VoucherService.preview_voucher(db, data.code, data.event_id, data.subtotal_idr)
    return to_preview(voucher, discount)

@router.post("/coupons/validate", response_model=DiscountPreview)
def validate_coupon(
    request: Request,
    data: CouponValidateRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """Check a coupon code for the caller. Nothing is reserved."""
    # Rate limiting
    client_ip = get_client_ip(request)
    if not rate_limit_check(client_ip):
        return rate_limit_error()

    coupon, discount = VoucherService.preview_coupon(db, auth, data.code, data.subtotal_idr)
    return to_preview(coupon, discount)

@router.post("/vouchers", response_model=VoucherResponse, status_code=201)
def create_voucher(
    data: VoucherCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    voucher = VoucherService.create_voucher(db, auth, data)
    return VoucherResponse.model_validate(voucher)

@router.get("/vouchers", response_model=List[VoucherResponse])
def list_vouchers(
    event_id: Optional[int] = Query(None, alias="eventId"),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    vouchers = VoucherService.list_vouchers(db, auth, event_id)
    return [VoucherResponse.model_validate(v) for v in vouchers]

@router.patch("/vouchers/{voucher_id}/deactivate", response_model=VoucherResponse)
def deactivate_voucher(
    voucher_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    voucher = VoucherService.deactivate(db, auth, voucher_id)
    return VoucherResponse.model_validate(voucher)
