"""
Flask configuration.

Values are read from the environment when the application is created. See
:func:`intake.factory.create_app` for overriding them in tests.
"""
import os
from os import environ

LOGLEVEL = int(environ.get('LOGLEVEL', '20'))
"""
Logging verbosity.

See `https://docs.python.org/3/library/logging.html#levels`_.
"""

SERVICE_NAME = environ.get('SERVICE_NAME', 'TechHelpSeniors')
"""Service name reported by the health endpoint."""

DATA_DIR = environ.get('DATA_DIR', os.path.join(os.getcwd(), 'data'))
"""Directory that holds the ledger."""

LEDGER_PATH = environ.get('LEDGER_PATH',
                          os.path.join(DATA_DIR, 'submissions.csv'))
"""Full path to the CSV ledger of submissions."""

ATTACHMENT_ROOT = environ.get('ATTACHMENT_ROOT',
                              os.path.join(os.getcwd(), 'uploads'))
"""
Directory under which all uploaded files are stored.

Attachment paths recorded in the ledger are relative to this directory.
"""

API_KEY = environ.get('API_KEY', '')
"""Secret that submitters must present. All whitespace is ignored."""

API_KEY_FILE = environ.get('API_KEY_FILE', 'api_key.txt')
"""File to read the submitter secret from if :const:`API_KEY` is not set."""

ADMIN_KEY = environ.get('ADMIN_KEY', '')
"""Secret that reviewers must present. All whitespace is ignored."""

ADMIN_KEY_FILE = environ.get('ADMIN_KEY_FILE', 'admin_pass.txt')
"""File to read the admin secret from if :const:`ADMIN_KEY` is not set."""

MAX_FILE_SIZE_BYTES = int(environ.get('MAX_FILE_SIZE_BYTES',
                                      str(10 * 1024 * 1024)))
"""Largest single attachment that will be accepted."""

MAX_FILES_PER_SUBMISSION = int(environ.get('MAX_FILES_PER_SUBMISSION', '10'))
"""Largest number of attachments on one submission."""

MAX_CONTENT_LENGTH = MAX_FILE_SIZE_BYTES * MAX_FILES_PER_SUBMISSION \
    + 1024 * 1024
"""
Upper bound on the size of a whole request body.

Allows for a full complement of maximum-size attachments plus form fields;
individual files are checked against :const:`MAX_FILE_SIZE_BYTES`.
"""
