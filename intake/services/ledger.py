"""
Append-only CSV ledger of submissions.

The ledger is a single UTF-8 CSV file whose first row is the canonical header
(:data:`intake.domain.FIELDS`). New submissions are appended as a single line;
existing lines are never rewritten except when a submission is removed, in
which case the whole file is rewritten to a temporary file and renamed over
the original.

Reads are forgiving: rows are mapped by the header that is actually present in
the file, and missing or short cells default to empty strings, so that one
damaged row does not make the rest of the ledger unreadable.
"""

import csv
import io
import logging
import os
import shutil
import tempfile
from typing import List, Optional, Tuple

from retry import retry

from ..domain import FIELDS, Submission
from ..exceptions import InvalidInput, NoSuchSubmission, StorageFault
from ..identity import is_valid_id

logger = logging.getLogger(__name__)

Row = List[str]


def _encode(rows: List[Row]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n')
    writer.writerows(rows)
    return buffer.getvalue()


@retry(PermissionError, tries=3, delay=0.05)
def _replace(source: str, dest: str) -> None:
    # On some platforms the rename fails while a reader holds the file open.
    os.replace(source, dest)


class Ledger(object):
    """The append/list/remove interface over the ledger file."""

    def __init__(self, path: str) -> None:
        self.path = path

    def ensure_initialized(self) -> None:
        """Create a header-only ledger if none exists yet."""
        try:
            directory = os.path.dirname(os.path.abspath(self.path))
            os.makedirs(directory, exist_ok=True)
            if os.path.exists(self.path) and os.path.getsize(self.path) > 0:
                return
            with open(self.path, 'w', encoding='utf-8', newline='') as f:
                f.write(_encode([FIELDS]))
        except OSError as e:
            raise StorageFault(f'Could not initialize ledger: {e}') from e
        logger.info('Created ledger at %s', self.path)

    def append(self, submission: Submission) -> None:
        """
        Add a submission to the end of the ledger.

        The row is written with a single call, so a reader never sees part of a
        row from this process. If the ledger is missing or empty, the header
        goes out in the same call.
        """
        rows = [submission.to_row()]
        try:
            with open(self.path, 'a', encoding='utf-8', newline='') as f:
                if f.tell() == 0:
                    rows.insert(0, FIELDS)
                f.write(_encode(rows))
        except OSError as e:
            raise StorageFault(f'Could not append to ledger: {e}') from e

    def list(self) -> List[Submission]:
        """Get all submissions, most recent first."""
        header, rows = self._read()
        submissions = [self._to_submission(header, row) for row in rows]
        submissions.reverse()
        return submissions

    def get(self, submission_id: str) -> Submission:
        """
        Get a single submission by its identifier.

        Raises
        ------
        :class:`.InvalidInput`
            Raised if ``submission_id`` is not a path-safe token.
        :class:`.NoSuchSubmission`
            Raised if there is no row with that identifier.

        """
        self._validate(submission_id)
        header, rows = self._read()
        index = self._find(header, rows, submission_id)
        if index is None:
            raise NoSuchSubmission(f'No such submission: {submission_id}')
        return self._to_submission(header, rows[index])

    def remove(self, submission_id: str) -> Submission:
        """
        Remove a submission from the ledger.

        The rest of the ledger is rewritten with the canonical header and all
        other rows in their original order. If there is no such submission,
        the ledger file is left untouched.

        Returns
        -------
        :class:`.Submission`
            The removed submission, so that its attachments can be purged.

        Raises
        ------
        :class:`.InvalidInput`
            Raised if ``submission_id`` is not a path-safe token.
        :class:`.NoSuchSubmission`
            Raised if there is no row with that identifier.

        """
        self._validate(submission_id)
        header, rows = self._read()
        index = self._find(header, rows, submission_id)
        if index is None:
            raise NoSuchSubmission(f'No such submission: {submission_id}')
        removed = self._to_submission(header, rows[index])
        remaining = [self._to_submission(header, row).to_row()
                     for i, row in enumerate(rows) if i != index]
        self._rewrite([FIELDS] + remaining)
        logger.info('Removed submission %s from ledger', submission_id)
        return removed

    def _validate(self, submission_id: str) -> None:
        if not is_valid_id(submission_id):
            raise InvalidInput(f'Invalid submission id: {submission_id!r}')

    def _read(self) -> Tuple[Row, List[Row]]:
        try:
            with open(self.path, encoding='utf-8', newline='') as f:
                parsed = [row for row in csv.reader(f) if any(row)]
        except FileNotFoundError:
            return list(FIELDS), []
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise StorageFault(f'Could not read ledger: {e}') from e
        if not parsed:
            return list(FIELDS), []
        header = [name.strip() for name in parsed[0]]
        return header, parsed[1:]

    @staticmethod
    def _find(header: Row, rows: List[Row],
              submission_id: str) -> Optional[int]:
        try:
            column = header.index('id')
        except ValueError:
            return None
        for i, row in enumerate(rows):
            if len(row) > column and row[column].strip() == submission_id:
                return i
        return None

    @staticmethod
    def _to_submission(header: Row, row: Row) -> Submission:
        return Submission.from_row(dict(zip(header, row)))

    def _rewrite(self, rows: List[Row]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        handle, temp_path = tempfile.mkstemp(prefix='.ledger-', suffix='.csv',
                                             dir=directory)
        try:
            with os.fdopen(handle, 'w', encoding='utf-8', newline='') as f:
                f.write(_encode(rows))
                f.flush()
                os.fsync(f.fileno())
            shutil.copymode(self.path, temp_path)
            _replace(temp_path, self.path)
        except OSError as e:
            try:
                os.remove(temp_path)
            except OSError:
                logger.warning('Could not remove temporary ledger %s',
                               temp_path)
            raise StorageFault(f'Could not rewrite ledger: {e}') from e
