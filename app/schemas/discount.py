"""
Voucher and coupon schemas
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import Field

from app.schemas.common import CamelModel

class VoucherValidateRequest(CamelModel):
    code: str = Field(min_length=1)
    event_id: int
    subtotal_idr: Optional[int] = Field(default=None, alias="subtotalIDR", ge=0)

class CouponValidateRequest(CamelModel):
    code: str = Field(min_length=1)
    subtotal_idr: Optional[int] = Field(default=None, alias="subtotalIDR", ge=0)

class DiscountPreview(CamelModel):
    """Preview of a valid code; discountIDR is filled when a subtotal was supplied"""
    code: str
    discount_type: str
    discount_value: int
    discount_idr: Optional[int] = Field(default=None, alias="discountIDR")

class VoucherCreate(CamelModel):
    event_id: int
    code: str = Field(min_length=3, max_length=50)
    discount_type: Literal["AMOUNT", "PERCENT"]
    discount_value: int = Field(gt=0)
    starts_at: datetime
    ends_at: datetime
    max_uses: Optional[int] = Field(default=None, gt=0)

class VoucherResponse(CamelModel):
    id: int
    event_id: int
    code: str
    discount_type: str
    discount_value: int
    starts_at: datetime
    ends_at: datetime
    max_uses: Optional[int]
    used_count: int
    is_active: bool
