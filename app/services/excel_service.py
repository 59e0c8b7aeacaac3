"""
Excel export of event attendee lists
"""

import io
from typing import List

import pandas as pd

from app.models import AttendeeRecord

class ExcelService:
    """Service for handling Excel operations"""

    COLUMNS = ['Ticket Code', 'Name', 'Email', 'Ticket Type', 'Transaction', 'Issued At']

    @staticmethod
    def export_attendees(attendees: List[AttendeeRecord]) -> bytes:
        """Export attendee records to an Excel workbook"""
        data = [
            {
                'Ticket Code': record.ticket_code,
                'Name': record.user.name,
                'Email': record.user.email,
                'Ticket Type': record.ticket_type.name,
                'Transaction': record.transaction_id,
                'Issued At': record.created_at,
            }
            for record in attendees
        ]

        df = pd.DataFrame(data, columns=ExcelService.COLUMNS)

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            df.to_excel(writer, index=False, sheet_name='Attendees')

        return buffer.getvalue()

