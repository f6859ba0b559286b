"""Application factory for the intake service."""

import logging
from typing import Any, Mapping, Optional

from flask import Flask, jsonify, Response
from werkzeug.exceptions import HTTPException, Forbidden, Unauthorized, \
    BadRequest, MethodNotAllowed, InternalServerError, NotFound, \
    RequestEntityTooLarge

from .auth import Credentials
from .routes import api
from .services.attachments import AttachmentStore
from .services.ledger import Ledger
from .services.retrieval import IntakeService

EXTENSION = 'intake'


def create_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    """
    Create a new app.

    Parameters
    ----------
    config : dict
        Overrides for values in :mod:`intake.config`; applied before the
        credentials are loaded and the storage services are built.

    """
    app = Flask('intake')
    app.config.from_pyfile('config.py')
    if config:
        app.config.update(config)
    configure_logging(app)
    init_services(app)
    register_error_handlers(app)
    app.register_blueprint(api)
    return app


def configure_logging(app: Flask) -> None:
    """Set up the log format and level from the application config."""
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s: %(message)s'
    )
    logging.getLogger('intake').setLevel(app.config['LOGLEVEL'])


def init_services(app: Flask) -> None:
    """Load credentials once, and set up the ledger and attachment store."""
    service = IntakeService(
        Credentials.from_config(app.config),
        Ledger(app.config['LEDGER_PATH']),
        AttachmentStore(app.config['ATTACHMENT_ROOT'])
    )
    service.initialize()
    app.extensions[EXTENSION] = service


def register_error_handlers(app: Flask) -> None:
    """Register error handlers for the Flask app."""
    app.errorhandler(Forbidden)(jsonify_exception)
    app.errorhandler(Unauthorized)(jsonify_exception)
    app.errorhandler(BadRequest)(jsonify_exception)
    app.errorhandler(InternalServerError)(jsonify_exception)
    app.errorhandler(NotFound)(jsonify_exception)
    app.errorhandler(MethodNotAllowed)(jsonify_exception)
    app.errorhandler(RequestEntityTooLarge)(jsonify_exception)


def jsonify_exception(error: HTTPException) -> Response:
    """Render exceptions as JSON."""
    exc_resp = error.get_response()
    response: Response = jsonify(reason=error.description)
    response.status_code = exc_resp.status_code
    return response
