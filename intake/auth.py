"""
Shared-secret access control for submitters and reviewers.

There are two independent secrets: the submitter API key, which is required to
submit a form, and the admin key, which is required for everything else. Both
are loaded once when the application is created (see
:meth:`Credentials.from_config`) and never re-read per request.

An empty secret never authenticates anything, and neither does an empty
credential.
"""

import hmac
import logging
import re
from typing import Any, Mapping, NamedTuple, Optional

from .exceptions import AccessDenied

logger = logging.getLogger(__name__)

WHITESPACE = re.compile(r'\s')

SUBMITTER_HEADER = 'X-API-Key'
SUBMITTER_PARAM = 'api_key'
ADMIN_PARAM = 'key'
BEARER = 'Bearer '


def normalize(value: Optional[str]) -> str:
    """Remove all whitespace from a secret or credential."""
    return WHITESPACE.sub('', value or '')


def load_secret(value: Optional[str], path: Optional[str] = None) -> str:
    """
    Load a secret from config, falling back to a file.

    A secret file that does not exist or can't be read yields an empty secret,
    which fails closed.
    """
    if value:
        return normalize(value)
    if not path:
        return ''
    try:
        with open(path, encoding='utf-8') as f:
            return normalize(f.read())
    except OSError as e:
        logger.warning('Could not read secret file %s: %s', path, e)
        return ''


def is_authentic(presented: Optional[str], secret: Optional[str]) -> bool:
    """Determine whether a presented credential matches a secret."""
    presented, secret = normalize(presented), normalize(secret)
    if not presented or not secret:
        return False
    return hmac.compare_digest(presented.encode('utf-8'),
                               secret.encode('utf-8'))


class Credentials(NamedTuple):
    """The configured secrets; immutable once the application is created."""

    submitter_key: str
    admin_key: str

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'Credentials':
        """Load both secrets from an application config mapping."""
        credentials = cls(
            submitter_key=load_secret(config.get('API_KEY'),
                                      config.get('API_KEY_FILE')),
            admin_key=load_secret(config.get('ADMIN_KEY'),
                                  config.get('ADMIN_KEY_FILE'))
        )
        if not credentials.submitter_key:
            logger.warning('API key is not set; all submissions will be'
                           ' rejected')
        if not credentials.admin_key:
            logger.warning('Admin key is not set; all admin requests will be'
                           ' rejected')
        return credentials

    def require_submitter(self, presented: Optional[str]) -> None:
        """Raise :class:`.AccessDenied` unless ``presented`` is the API key."""
        if not is_authentic(presented, self.submitter_key):
            logger.warning('Rejected submission with invalid or missing key')
            raise AccessDenied('Invalid or missing API key')

    def require_admin(self, presented: Optional[str]) -> None:
        """Raise :class:`.AccessDenied` unless ``presented`` is the admin key."""
        if not is_authentic(presented, self.admin_key):
            logger.warning('Rejected admin request with invalid or missing key')
            raise AccessDenied('Unauthorized')


def submitter_credential(headers: Mapping[str, str],
                         args: Mapping[str, str],
                         body: Mapping[str, Any]) -> str:
    """
    Find the submitter credential on a request.

    Checked in order, first non-empty wins: the ``X-API-Key`` header, a
    bearer ``Authorization`` header, the ``api_key`` query parameter, and the
    ``api_key`` body field.
    """
    authorization = headers.get('Authorization') or ''
    if authorization.startswith(BEARER):
        authorization = authorization[len(BEARER):]
    candidates = [
        headers.get(SUBMITTER_HEADER),
        authorization,
        args.get(SUBMITTER_PARAM),
        body.get(SUBMITTER_PARAM)
    ]
    for candidate in candidates:
        if isinstance(candidate, str) and normalize(candidate):
            return candidate
    return ''


def admin_credential(args: Mapping[str, str]) -> str:
    """Get the admin credential, which is only accepted as ``?key=``."""
    return args.get(ADMIN_PARAM) or ''
