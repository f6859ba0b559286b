"""
Containment checks for paths into the attachment root.

Any path that arrives from outside (a request URL, or a ledger cell that
might have been edited by hand) must pass through :class:`PathGuard` before
it is used to read or delete anything.
"""

import logging
import os

from ..exceptions import PathForbidden

logger = logging.getLogger(__name__)


class PathGuard(object):
    """Resolves relative paths strictly inside of an attachment root."""

    def __init__(self, root: str) -> None:
        self.root = os.path.realpath(root)

    def contains(self, path: str) -> bool:
        """Determine whether an absolute ``path`` is the root or below it."""
        # ``/srv/uploads-old`` is not inside ``/srv/uploads``.
        return path == self.root or path.startswith(self.root + os.sep)

    def validate(self, requested: str) -> str:
        """
        Resolve ``requested`` to an absolute path inside the root.

        Parameters
        ----------
        requested : str
            A path relative to the attachment root, already URL-decoded.

        Returns
        -------
        str
            Canonical absolute path.

        Raises
        ------
        :class:`.PathForbidden`
            Raised when the path resolves outside of the root.

        """
        cleaned = (requested or '').replace('..', '')
        try:
            resolved = os.path.realpath(os.path.join(self.root, cleaned))
        except ValueError:     # Embedded NUL.
            resolved = None
        if resolved is None or not self.contains(resolved):
            logger.warning('Rejected path outside attachment root: %r',
                           requested)
            raise PathForbidden(f'Path not allowed: {requested}')
        return resolved

    def relative(self, path: str) -> str:
        """Express an absolute path inside the root as a POSIX relative path."""
        return os.path.relpath(path, self.root).replace(os.sep, '/')
