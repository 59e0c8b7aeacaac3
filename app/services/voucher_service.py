"""
Voucher management and discount code previews
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.models import Coupon, DiscountType, Voucher
from app.schemas.discount import VoucherCreate
from app.services.discount_service import DiscountResolver, compute_discount
from app.services.repositories import EventRepo, VoucherRepo
from app.utils.security import AuthContext

logger = logging.getLogger(__name__)


class VoucherService:
    """Service for organizer vouchers and buyer-facing code checks"""

    @staticmethod
    def create_voucher(db: Session, auth: AuthContext, data: VoucherCreate) -> Voucher:
        auth.require_organizer()
        event = EventRepo.get_by_id(db, data.event_id)
        if not event:
            raise NotFoundError("Event")
        if event.organizer_id != auth.user_id:
            raise ForbiddenError()

        code = data.code.strip().upper()
        if not code:
            raise ValidationError("Voucher code is required")
        if data.starts_at > data.ends_at:
            raise ValidationError("Voucher must start before it ends")
        if data.discount_type == DiscountType.PERCENT and data.discount_value > 100:
            raise ValidationError("Percentage discount cannot exceed 100")
        if VoucherRepo.find_code(db, event.id, code):
            raise ValidationError("Voucher code already exists for this event")

        voucher = Voucher(
            event_id=event.id,
            code=code,
            discount_type=data.discount_type,
            discount_value=data.discount_value,
            starts_at=data.starts_at,
            ends_at=data.ends_at,
            max_uses=data.max_uses,
        )
        db.add(voucher)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise ValidationError("Voucher code already exists for this event") from e

        db.refresh(voucher)
        logger.info(f"Voucher {voucher.code} created for event {event.id}")
        return voucher

    @staticmethod
    def list_vouchers(db: Session, auth: AuthContext, event_id: Optional[int] = None) -> List[Voucher]:
        auth.require_organizer()
        return VoucherRepo.list_for_organizer(db, auth.user_id, event_id)

    @staticmethod
    def deactivate(db: Session, auth: AuthContext, voucher_id: int) -> Voucher:
        """Retire a voucher. Used vouchers are kept for the transactions that reference them."""
        auth.require_organizer()
        voucher = VoucherRepo.get_by_id(db, voucher_id)
        if not voucher:
            raise NotFoundError("Voucher")
        if voucher.event.organizer_id != auth.user_id:
            raise ForbiddenError()

        voucher.is_active = False
        db.commit()
        db.refresh(voucher)
        logger.info(f"Voucher {voucher.id} deactivated")
        return voucher

    @staticmethod
    def _preview(code: Union[Voucher, Coupon], subtotal: Optional[int]) -> Tuple[Union[Voucher, Coupon], Optional[int]]:
        discount = None
        if subtotal is not None:
            discount = compute_discount(subtotal, code.discount_type, code.discount_value)
        return code, discount

    @staticmethod
    def preview_voucher(
        db: Session,
        code: str,
        event_id: int,
        subtotal: Optional[int] = None,
        now: Optional[datetime] = None,
    ):
        voucher = DiscountResolver.validate_voucher(db, code, event_id, now)
        return VoucherService._preview(voucher, subtotal)

    @staticmethod
    def preview_coupon(
        db: Session,
        auth: AuthContext,
        code: str,
        subtotal: Optional[int] = None,
        now: Optional[datetime] = None,
    ):
        coupon = DiscountResolver.validate_coupon(db, code, auth.user_id, now)
        return VoucherService._preview(coupon, subtotal)
