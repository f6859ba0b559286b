"""Request controllers."""

from typing import Dict, Any, Iterable, Mapping, Optional, Tuple
from http import HTTPStatus

from flask import current_app
from werkzeug.exceptions import NotFound, BadRequest, Forbidden, \
    Unauthorized, InternalServerError

from .domain import get_tzaware_utc_now
from .exceptions import AccessDenied, InvalidInput, NoSuchFile, \
    NoSuchSubmission, PathForbidden, StorageFault
from .services.retrieval import IntakeService

Response = Tuple[Any, HTTPStatus, Dict[str, str]]


def get_service() -> IntakeService:
    """Get the :class:`.IntakeService` bound to the current application."""
    service: IntakeService = current_app.extensions['intake']
    return service


def service_status() -> Response:
    """Handle requests for the status of this service."""
    data = {
        'status': 'ok',
        'service': current_app.config['SERVICE_NAME'],
        'timestamp': get_tzaware_utc_now().isoformat()
    }
    return data, HTTPStatus.OK, {}


def submit(fields: Mapping[str, str], uploads: Iterable,
           credential: Optional[str]) -> Response:
    """
    Accept a new form submission.

    Parameters
    ----------
    fields : dict
        Form fields from the request body.
    uploads : list
        :class:`werkzeug.datastructures.FileStorage` instances, already
        checked against the size and count limits.
    credential : str
        Submitter API key presented with the request.

    Returns
    -------
    dict
        Data for the response body.
    int
        HTTP response status code.
    dict
        Headers to add to the response.

    """
    try:
        submission = get_service().submit(fields, uploads, credential)
    except AccessDenied as e:
        raise Unauthorized(str(e)) from e
    except StorageFault as e:
        raise InternalServerError(f'Could not store submission: {e}') from e
    data = {
        'success': True,
        'id': submission.id,
        'message': 'Form submitted successfully'
    }
    return data, HTTPStatus.CREATED, {}


def list_submissions(credential: Optional[str]) -> Response:
    """Get all submissions, most recent first."""
    try:
        submissions = get_service().list_submissions(credential)
    except AccessDenied as e:
        raise Unauthorized(str(e)) from e
    except StorageFault as e:
        raise InternalServerError(f'Could not read submissions: {e}') from e
    return [s.to_dict() for s in submissions], HTTPStatus.OK, {}


def get_submission(submission_id: str, credential: Optional[str]) -> Response:
    """Get a single submission."""
    try:
        submission = get_service().get_submission(submission_id, credential)
    except AccessDenied as e:
        raise Unauthorized(str(e)) from e
    except InvalidInput as e:
        raise BadRequest(str(e)) from e
    except NoSuchSubmission as e:
        raise NotFound(str(e)) from e
    except StorageFault as e:
        raise InternalServerError(f'Could not read submissions: {e}') from e
    return submission.to_dict(), HTTPStatus.OK, {}


def delete_submission(submission_id: str,
                      credential: Optional[str]) -> Response:
    """Delete a submission and its attached files."""
    try:
        removed = get_service().delete_submission(submission_id, credential)
    except AccessDenied as e:
        raise Unauthorized(str(e)) from e
    except InvalidInput as e:
        raise BadRequest(str(e)) from e
    except NoSuchSubmission as e:
        raise NotFound(str(e)) from e
    except StorageFault as e:
        raise InternalServerError(f'Could not delete submission: {e}') from e
    return {'success': True, 'id': removed.id}, HTTPStatus.OK, {}


def get_file(path: str, credential: Optional[str]) -> Response:
    """
    Locate an attached file for download.

    Returns
    -------
    str
        Absolute path of the file, for the route to stream.
    int
        HTTP response status code.
    dict
        Headers to add to the response.

    """
    try:
        resolved = get_service().read_file(path, credential)
    except AccessDenied as e:
        raise Unauthorized(str(e)) from e
    except PathForbidden as e:
        raise Forbidden('Forbidden') from e
    except NoSuchFile as e:
        raise NotFound('Not found') from e
    return resolved, HTTPStatus.OK, {}
