"""Web Server Gateway Interface entry-point."""

import os
from typing import Optional

from flask import Flask

from intake.factory import create_app

__app__: Optional[Flask] = None


def application(environ, start_response):
    """WSGI application factory."""
    global __app__
    for key, value in environ.items():
        if key == 'SERVER_NAME':
            continue
        if isinstance(value, str):
            os.environ[key] = value
    if __app__ is None:
        __app__ = create_app()
    return __app__(environ, start_response)
