"""Request routing."""

import os
from typing import Any, Dict, List

from flask import Blueprint, Response, request, jsonify, make_response, \
    current_app, send_file
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import BadRequest, RequestEntityTooLarge

from . import controllers
from .auth import admin_credential, submitter_credential

UPLOAD_FIELD = 'additionalMaterials'

api = Blueprint('intake', __name__)


@api.route('/health', methods=['GET', 'HEAD'])
def service_status() -> Response:
    """Status check endpoint."""
    data, code, head = controllers.service_status()
    response: Response = make_response(jsonify(data), code, head)
    return response


@api.route('/api/submit', methods=['POST'])
def submit() -> Response:
    """Accept a form submission, with optional attachments."""
    body = get_body()
    credential = submitter_credential(request.headers, request.args, body)
    data, code, head = controllers.submit(body, get_uploads(), credential)
    response: Response = make_response(jsonify(data), code, head)
    return response


@api.route('/api/submissions', methods=['GET'])
def list_submissions() -> Response:
    """List all submissions, most recent first."""
    data, code, head = \
        controllers.list_submissions(admin_credential(request.args))
    response: Response = make_response(jsonify(data), code, head)
    return response


@api.route('/api/submissions/<string:submission_id>', methods=['GET'])
def get_submission(submission_id: str) -> Response:
    """Get a single submission."""
    data, code, head = controllers.get_submission(
        submission_id, admin_credential(request.args))
    response: Response = make_response(jsonify(data), code, head)
    return response


@api.route('/api/submissions/<string:submission_id>', methods=['DELETE'])
def delete_submission(submission_id: str) -> Response:
    """Delete a submission and its attachments."""
    data, code, head = controllers.delete_submission(
        submission_id, admin_credential(request.args))
    response: Response = make_response(jsonify(data), code, head)
    return response


@api.route('/api/files/<path:file_path>', methods=['GET'])
def get_file(file_path: str) -> Response:
    """Stream an attached file."""
    path, code, head = controllers.get_file(file_path,
                                            admin_credential(request.args))
    response: Response = make_response(send_file(path), code, head)
    return response


def get_body() -> Dict[str, Any]:
    """Get form fields from either a JSON or a form-encoded request body."""
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


def get_uploads() -> List[FileStorage]:
    """Get attached files, enforcing the count and per-file size limits."""
    uploads = [upload for upload in request.files.getlist(UPLOAD_FIELD)
               if upload and upload.filename]
    max_files = int(current_app.config['MAX_FILES_PER_SUBMISSION'])
    if len(uploads) > max_files:
        raise BadRequest(f'No more than {max_files} files may be attached')
    max_size = int(current_app.config['MAX_FILE_SIZE_BYTES'])
    for upload in uploads:
        if _size_of(upload) > max_size:
            raise RequestEntityTooLarge(
                f'{upload.filename} exceeds size of {max_size}'
            )
    return uploads


def _size_of(upload: FileStorage) -> int:
    stream = upload.stream
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return size
