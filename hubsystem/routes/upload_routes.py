from flask import Blueprint, jsonify, request, send_from_directory, current_app, url_for
from flask_login import login_required

from hubsystem.services.upload_service import UploadService

upload_bp = Blueprint('upload', __name__)


@upload_bp.route('/api/upload', methods=['POST'])
@login_required
def upload():
    stored_name, mime, size = UploadService.save(request.files.get('file'))
    return jsonify({
        "success": True,
        "url": url_for('upload.serve_upload', filename=stored_name),
        "filename": stored_name,
        "mime_type": mime,
        "size": size,
    }), 201


@upload_bp.route('/uploads/<path:filename>')
def serve_upload(filename):
    return send_from_directory(current_app.config['UPLOAD_FOLDER'], filename)
