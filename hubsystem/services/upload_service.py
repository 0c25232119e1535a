import logging
import os
import uuid

import filetype
from flask import current_app
from werkzeug.utils import secure_filename

from hubsystem.errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'pdf', 'png', 'jpg', 'jpeg', 'gif', 'webp'}
ALLOWED_MIME_TYPES = {'application/pdf', 'image/png', 'image/jpeg', 'image/gif', 'image/webp'}


def allowed_file(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def validate_mime_type(file_stream):
    # Read first 2048 bytes for signature checking
    header = file_stream.read(2048)
    file_stream.seek(0)

    kind = filetype.guess(header)
    if kind is None:
        return None
    return kind.mime if kind.mime in ALLOWED_MIME_TYPES else None


class UploadService:

    @staticmethod
    def save(file):
        """Validate and store an uploaded file. Returns (stored_name, mime, size)."""
        if file is None or not file.filename:
            raise ValidationError("No file provided")
        if not allowed_file(file.filename):
            raise ValidationError("File type not allowed",
                                  details={"allowed": sorted(ALLOWED_EXTENSIONS)})

        mime = validate_mime_type(file.stream)
        if mime is None:
            raise ValidationError("Invalid file type detected. Please upload a valid PDF or image.")

        original_filename = secure_filename(file.filename)
        unique_filename = f"{uuid.uuid4().hex}_{original_filename}"

        upload_folder = current_app.config['UPLOAD_FOLDER']
        os.makedirs(upload_folder, exist_ok=True)

        filepath = os.path.join(upload_folder, unique_filename)
        file.save(filepath)
        size = os.path.getsize(filepath)
        logger.info("Stored upload %s (%s, %d bytes)", unique_filename, mime, size)
        return unique_filename, mime, size
