"""Tests for :mod:`intake.services.retrieval`."""

from unittest import TestCase, mock
from datetime import datetime
import io
import os
import re
import shutil
import tempfile

from pytz import UTC
from werkzeug.datastructures import FileStorage

from intake.auth import Credentials
from intake.exceptions import AccessDenied, InvalidInput, NoSuchFile, \
    NoSuchSubmission, PathForbidden, StorageFault
from intake.services.attachments import AttachmentStore
from intake.services.ledger import Ledger
from intake.services.retrieval import IntakeService

API_KEY = 'submitter-secret'
ADMIN_KEY = 'admin-secret'


def upload(name: str, size: int = 2048) -> FileStorage:
    return FileStorage(stream=io.BytesIO(b'x' * size), filename=name)


class TestServiceBase(TestCase):
    """There is an empty ledger and attachment root."""

    def setUp(self):
        self.base = tempfile.mkdtemp()
        self.ledger_path = os.path.join(self.base, 'data', 'submissions.csv')
        self.root = os.path.join(self.base, 'uploads')
        self.service = IntakeService(
            Credentials(submitter_key=API_KEY, admin_key=ADMIN_KEY),
            Ledger(self.ledger_path),
            AttachmentStore(self.root)
        )
        self.service.initialize()

    def tearDown(self):
        shutil.rmtree(self.base)

    def ledger_lines(self):
        with open(self.ledger_path, encoding='utf-8') as f:
            return f.read().splitlines()


class TestSubmit(TestServiceBase):
    """Accept new submissions."""

    def test_scenario(self):
        """A repair request with one attached file."""
        now = datetime.now(UTC)
        submission = self.service.submit(
            {'formPurpose': 'repair', 'firstName': 'Ada'},
            [upload('résumé.pdf')], API_KEY, now
        )
        self.assertTrue(submission.id)
        self.assertEqual(len(self.ledger_lines()), 2)

        directory = os.path.join(self.root, now.strftime('%Y'),
                                 now.strftime('%m'), now.strftime('%d'),
                                 submission.id)
        files = os.listdir(directory)
        self.assertEqual(len(files), 1)
        self.assertRegex(files[0], r'^resume-\d+\.pdf$')
        self.assertEqual(os.path.getsize(os.path.join(directory, files[0])),
                         2048)

        listed = self.service.list_submissions(ADMIN_KEY)
        self.assertEqual(listed[0].id, submission.id)
        self.assertEqual(listed[0].form_purpose, 'repair')
        self.assertEqual(listed[0].last_name, '')
        self.assertEqual(listed[0].attachment_paths,
                         submission.attachment_paths)

    def test_denied_before_storage(self):
        """A bad key stores nothing at all."""
        for credential in ['', None, 'wrong', ADMIN_KEY]:
            with self.assertRaises(AccessDenied):
                self.service.submit({'formPurpose': 'repair'},
                                    [upload('a.pdf')], credential)
        self.assertEqual(len(self.ledger_lines()), 1)
        self.assertEqual(os.listdir(self.root), [])

    def test_ledger_failure_purges_attachments(self):
        """Files are cleaned up if the ledger row can't be written."""
        with mock.patch.object(self.service.ledger, 'append',
                               side_effect=StorageFault('disk full')):
            with self.assertRaises(StorageFault):
                self.service.submit({}, [upload('a.pdf')], API_KEY)
        self.assertEqual(os.listdir(self.root), [])

    def test_without_attachments(self):
        """A submission does not need files."""
        submission = self.service.submit({'email': 'a@example.com'}, [],
                                         API_KEY)
        self.assertEqual(submission.attachment_paths, [])
        self.assertEqual(os.listdir(self.root), [])


class TestAdmin(TestServiceBase):
    """List, inspect, and delete submissions."""

    def setUp(self):
        super(TestAdmin, self).setUp()
        self.first = self.service.submit({'formPurpose': 'one'},
                                         [upload('a.txt'), upload('b.txt')],
                                         API_KEY)
        self.second = self.service.submit({'formPurpose': 'two'},
                                          [upload('c.txt')], API_KEY)

    def test_list(self):
        """Submissions are listed most recent first."""
        self.assertEqual(
            [s.id for s in self.service.list_submissions(ADMIN_KEY)],
            [self.second.id, self.first.id]
        )

    def test_admin_key_required(self):
        """Every admin operation checks the admin key first."""
        for credential in ['', None, API_KEY]:
            with self.assertRaises(AccessDenied):
                self.service.list_submissions(credential)
            with self.assertRaises(AccessDenied):
                self.service.get_submission(self.first.id, credential)
            with self.assertRaises(AccessDenied):
                self.service.delete_submission(self.first.id, credential)
            with self.assertRaises(AccessDenied):
                self.service.read_file(self.first.attachment_paths[0],
                                       credential)
        self.assertEqual(len(self.service.list_submissions(ADMIN_KEY)), 2)

    def test_get(self):
        """A single submission can be inspected."""
        got = self.service.get_submission(self.first.id, ADMIN_KEY)
        self.assertEqual(got.form_purpose, 'one')

    def test_delete(self):
        """Deleting removes the row and every attached file."""
        removed = self.service.delete_submission(self.first.id, ADMIN_KEY)
        self.assertEqual(removed.id, self.first.id)
        self.assertEqual(
            [s.id for s in self.service.list_submissions(ADMIN_KEY)],
            [self.second.id]
        )
        for path in self.first.attachment_paths:
            self.assertFalse(os.path.exists(os.path.join(self.root, path)))
        for path in self.second.attachment_paths:
            self.assertTrue(os.path.isfile(os.path.join(self.root, path)))

    def test_delete_all(self):
        """Deleting everything empties the tree, but keeps the root."""
        self.service.delete_submission(self.first.id, ADMIN_KEY)
        self.service.delete_submission(self.second.id, ADMIN_KEY)
        self.assertEqual(os.listdir(self.root), [])

    def test_delete_missing(self):
        """Deleting an unknown submission is reported as not found."""
        with self.assertRaises(NoSuchSubmission):
            self.service.delete_submission('nope', ADMIN_KEY)

    def test_delete_invalid(self):
        """A malformed identifier is rejected."""
        with self.assertRaises(InvalidInput):
            self.service.delete_submission('../etc', ADMIN_KEY)

    def test_read_file(self):
        """An attached file resolves to its absolute path."""
        path = self.service.read_file(self.first.attachment_paths[0],
                                      ADMIN_KEY)
        with open(path, 'rb') as f:
            self.assertEqual(f.read(), b'x' * 2048)

    def test_read_file_forbidden(self):
        """Paths outside the attachment root are forbidden."""
        with self.assertRaises(PathForbidden):
            self.service.read_file('../../etc/passwd', ADMIN_KEY)
        with self.assertRaises(PathForbidden):
            self.service.read_file(self.ledger_path, ADMIN_KEY)

    def test_read_file_missing(self):
        """Contained paths that are not files are not found."""
        with self.assertRaises(NoSuchFile):
            self.service.read_file('2000/01/01/abc/x.png', ADMIN_KEY)
        with self.assertRaises(NoSuchFile):
            self.service.read_file('', ADMIN_KEY)
        directory = re.sub(r'/[^/]+$', '', self.first.attachment_paths[0])
        with self.assertRaises(NoSuchFile):
            self.service.read_file(directory, ADMIN_KEY)
