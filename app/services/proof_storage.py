"""
Payment proof image validation and storage
"""

import io
import logging
import os
import uuid

from PIL import Image, UnidentifiedImageError

from app.core.config import settings
from app.core.errors import ValidationError

logger = logging.getLogger(__name__)

EXTENSIONS = {"JPEG": "jpg", "PNG": "png", "WEBP": "webp"}

class ProofStorage:
    """Stores uploaded payment proof images on local disk"""

    @staticmethod
    def validate_image(file_content: bytes) -> str:
        """Check the upload is a readable image in an allowed format and return the format"""
        if not file_content:
            raise ValidationError("Payment proof file is empty")

        if len(file_content) > settings.MAX_PROOF_SIZE:
            raise ValidationError(
                f"Payment proof must be smaller than {settings.MAX_PROOF_SIZE // (1024 * 1024)}MB"
            )

        try:
            with Image.open(io.BytesIO(file_content)) as img:
                image_format = img.format
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError):
            raise ValidationError("Payment proof must be an image file")

        if image_format not in settings.ALLOWED_PROOF_FORMATS:
            raise ValidationError(
                f"Unsupported image format {image_format}. Allowed: {', '.join(settings.ALLOWED_PROOF_FORMATS)}"
            )
        return image_format

    @staticmethod
    def save(file_content: bytes, transaction_id: int, image_format: str) -> str:
        """Save the image and return its public URL path"""
        relative_dir = f"payment-proofs/{transaction_id}"
        upload_dir = os.path.join(settings.UPLOAD_DIR, relative_dir)
        os.makedirs(upload_dir, exist_ok=True)

        filename = f"{uuid.uuid4().hex}.{EXTENSIONS.get(image_format, 'img')}"
        with open(os.path.join(upload_dir, filename), 'wb') as f:
            f.write(file_content)

        return f"/uploads/{relative_dir}/{filename}"

    @staticmethod
    def discard(image_url: str) -> None:
        """Remove a saved image whose transaction never took it"""
        path = os.path.join(settings.UPLOAD_DIR, image_url.removeprefix("/uploads/"))
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.warning(f"Proof file already gone: {path}")
