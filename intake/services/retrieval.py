"""
Composition of access control, the ledger, and the attachment store.

:class:`IntakeService` is what the request controllers call. It knows nothing
about HTTP: credentials arrive as plain strings, and failures are raised as
exceptions from :mod:`intake.exceptions`. Every operation checks its
credential before touching the ledger or the filesystem.
"""

import logging
import os
from datetime import datetime
from typing import Iterable, List, Mapping, Optional

from ..auth import Credentials
from ..domain import Submission, get_tzaware_utc_now
from ..exceptions import NoSuchFile, StorageFault
from ..identity import generate_id
from .attachments import AttachmentStore
from .ledger import Ledger
from .pathguard import PathGuard

logger = logging.getLogger(__name__)


class IntakeService(object):
    """Submit, list, inspect, and delete submissions, and read attachments."""

    def __init__(self, credentials: Credentials, ledger: Ledger,
                 attachments: AttachmentStore,
                 guard: Optional[PathGuard] = None) -> None:
        self.credentials = credentials
        self.ledger = ledger
        self.attachments = attachments
        self.guard = guard if guard is not None else attachments.guard

    def initialize(self) -> None:
        """Make sure that the ledger and the attachment root exist."""
        self.ledger.ensure_initialized()
        try:
            self.attachments.initialize()
        except OSError as e:
            raise StorageFault(f'Could not create attachment root: {e}') from e

    def submit(self, fields: Mapping[str, str], uploads: Iterable,
               credential: Optional[str],
               now: Optional[datetime] = None) -> Submission:
        """
        Accept a new submission.

        Attachments are written first, then the ledger row that refers to
        them. If the row can't be written, the attachments are purged.

        Raises
        ------
        :class:`.AccessDenied`
        :class:`.StorageFault`

        """
        self.credentials.require_submitter(credential)
        if now is None:
            now = get_tzaware_utc_now()
        submission_id = generate_id()
        paths = self.attachments.save(submission_id, uploads, now)
        submission = Submission.create(submission_id, fields, paths, now)
        try:
            self.ledger.append(submission)
        except StorageFault:
            logger.exception('Could not record submission %s', submission_id)
            self.attachments.purge(paths)
            raise
        logger.info('Accepted submission %s with %i attachments',
                    submission_id, len(paths))
        return submission

    def list_submissions(self, credential: Optional[str]) -> List[Submission]:
        """Get all submissions, most recent first."""
        self.credentials.require_admin(credential)
        return self.ledger.list()

    def get_submission(self, submission_id: str,
                       credential: Optional[str]) -> Submission:
        """Get a single submission."""
        self.credentials.require_admin(credential)
        return self.ledger.get(submission_id.strip())

    def delete_submission(self, submission_id: str,
                          credential: Optional[str]) -> Submission:
        """
        Delete a submission and its attachments.

        Removing the ledger row is what counts; attachment cleanup afterward
        is best-effort and never fails the deletion.

        Raises
        ------
        :class:`.AccessDenied`
        :class:`.InvalidInput`
        :class:`.NoSuchSubmission`
        :class:`.StorageFault`

        """
        self.credentials.require_admin(credential)
        removed = self.ledger.remove(submission_id.strip())
        self.attachments.purge(removed.attachment_paths)
        logger.info('Deleted submission %s', removed.id)
        return removed

    def read_file(self, path: str, credential: Optional[str]) -> str:
        """
        Resolve an attachment path for reading.

        Returns
        -------
        str
            Absolute path to a regular file inside the attachment root.

        Raises
        ------
        :class:`.AccessDenied`
        :class:`.PathForbidden`
            Raised if the path escapes the attachment root.
        :class:`.NoSuchFile`
            Raised if the path is inside the root, but is not a file.

        """
        self.credentials.require_admin(credential)
        resolved = self.guard.validate(path)
        if not os.path.isfile(resolved):
            raise NoSuchFile(f'Not found: {path}')
        return resolved
