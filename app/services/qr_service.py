"""
QR code generation for attendee tickets
"""

import io
import qrcode

from app.core.config import settings

class QRService:
    """Service for generating ticket QR codes"""

    @staticmethod
    def get_ticket_url(ticket_code: str) -> str:
        """Get the URL encoded in a ticket's QR code"""
        return f"{settings.BASE_URL}/tickets/{ticket_code}"

    @staticmethod
    def generate_ticket_qr(ticket_code: str, format: str = 'PNG') -> bytes:
        """Generate QR code image for an attendee ticket"""
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(QRService.get_ticket_url(ticket_code))
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        img.save(buffer, format=format)

        return buffer.getvalue()
