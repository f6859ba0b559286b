"""
Functions for storing and purging submission attachments on the filesystem.

All of the files attached to a submission live together in one directory,
partitioned by the date on which the submission was received. For example,
a file attached to submission ``lq3x0d2k9f1a8c7e`` on 4 March 2024 would be
stored at::

    {ATTACHMENT_ROOT}/2024/03/04/lq3x0d2k9f1a8c7e/notes-1709553600000.pdf

Paths recorded in the ledger are relative to the attachment root, and always
use ``/`` as the separator.
"""

import logging
import os
import re
import time
from datetime import datetime
from typing import Iterable, List, Optional, Set

from unidecode import unidecode

from ..domain import get_tzaware_utc_now
from ..exceptions import InvalidInput, PathForbidden, StorageFault
from ..identity import is_valid_id
from .pathguard import PathGuard

logger = logging.getLogger(__name__)

MAX_BASE_LENGTH = 50
PLACEHOLDER = 'file'
UNSAFE = re.compile(r'[^a-zA-Z0-9_-]')


def _epoch_millis() -> int:
    return int(time.time() * 1000)


def _recover_utf8(name: str) -> str:
    # Multipart filenames are sometimes UTF-8 bytes that were decoded as
    # Latin-1 along the way; undo that when it round-trips cleanly.
    try:
        return name.encode('latin-1').decode('utf-8')
    except (UnicodeEncodeError, UnicodeDecodeError):
        return name


def sanitize_filename(original_name: Optional[str],
                      millis: Optional[int] = None) -> str:
    """
    Generate a safe, collision-resistant name for an uploaded file.

    Parameters
    ----------
    original_name : str
        The filename as provided by the client, if any.
    millis : int
        Epoch milliseconds to use as the uniqueness suffix. Defaults to the
        current time.

    Returns
    -------
    str
        A name of the form ``{base}-{millis}{ext}``, where ``base`` contains
        only ``[a-zA-Z0-9_-]`` and is at most 50 characters.

    """
    if millis is None:
        millis = _epoch_millis()
    name = _recover_utf8(original_name or '')
    name = name.replace('\\', '/').rsplit('/', 1)[-1]
    base, ext = os.path.splitext(name)
    base = UNSAFE.sub('', unidecode(base))[:MAX_BASE_LENGTH] or PLACEHOLDER
    if ext:
        ext = '.' + UNSAFE.sub('', unidecode(ext[1:]))
        if ext == '.':
            ext = ''
    return f'{base}-{millis}{ext}'


class AttachmentStore(object):
    """Places uploaded files under the attachment root, and removes them."""

    def __init__(self, root: str, guard: Optional[PathGuard] = None) -> None:
        self.root = root
        self.guard = guard if guard is not None else PathGuard(root)

    def initialize(self) -> None:
        """Make sure that the attachment root exists."""
        os.makedirs(self.root, exist_ok=True)

    def resolve_directory(self, submission_id: str,
                          now: Optional[datetime] = None) -> str:
        """
        Get (and create, if necessary) the directory for a submission.

        Raises
        ------
        :class:`.InvalidInput`
            Raised if ``submission_id`` is not a path-safe token.

        """
        if not is_valid_id(submission_id):
            raise InvalidInput(f'Invalid submission id: {submission_id!r}')
        if now is None:
            now = get_tzaware_utc_now()
        directory = os.path.join(self.guard.root, f'{now.year:04d}',
                                 f'{now.month:02d}', f'{now.day:02d}',
                                 submission_id)
        os.makedirs(directory, exist_ok=True)
        return directory

    def save(self, submission_id: str, uploads: Iterable,
             now: Optional[datetime] = None) -> List[str]:
        """
        Write uploaded files into the directory for a submission.

        Each upload must provide a ``filename`` attribute and a ``save(dst)``
        method, as :class:`werkzeug.datastructures.FileStorage` does. Files are
        written one after another; if any write fails, files already written
        for this call are purged.

        Returns
        -------
        list
            Paths relative to the attachment root, in upload order.

        """
        uploads = list(uploads)
        if not uploads:
            return []
        written: List[str] = []
        try:
            directory = self.resolve_directory(submission_id, now)
            for upload in uploads:
                target = self._unique_target(directory, upload.filename)
                upload.save(target)
                written.append(self.guard.relative(target))
        except OSError as e:
            logger.exception('Could not store attachments for %s',
                             submission_id)
            self.purge(written)
            raise StorageFault(f'Could not store attachment: {e}') from e
        logger.debug('Stored %i attachments for %s', len(written),
                     submission_id)
        return written

    def _unique_target(self, directory: str,
                       original_name: Optional[str]) -> str:
        millis = _epoch_millis()
        while True:
            target = os.path.join(directory,
                                  sanitize_filename(original_name, millis))
            if not os.path.exists(target):
                return target
            millis += 1

    def purge(self, paths: Iterable[str]) -> None:
        """
        Delete attachment files, and any directories that they leave empty.

        This is best-effort: files that are already gone, paths that escape
        the attachment root, and filesystem errors are logged and skipped.
        The attachment root itself is never removed.
        """
        parents: Set[str] = set()
        for path in paths:
            try:
                target = self.guard.validate(path)
            except PathForbidden:
                continue
            if target == self.guard.root:
                continue
            try:
                os.remove(target)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning('Could not delete attachment %s: %s', target, e)
            parents.add(os.path.dirname(target))

        # Deepest first, so that a date directory is only considered after
        # its submission directories.
        for directory in sorted(parents, key=lambda d: d.count(os.sep),
                                reverse=True):
            self._prune(directory)

    def _prune(self, directory: str) -> None:
        while directory != self.guard.root and self.guard.contains(directory):
            try:
                os.rmdir(directory)
            except FileNotFoundError:
                pass
            except OSError:     # Not empty; stop here.
                return
            directory = os.path.dirname(directory)
