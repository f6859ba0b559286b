"""Data structures for submissions."""

from typing import Dict, List, Mapping, Optional
from datetime import datetime

from dataclasses import dataclass, field
from pytz import UTC

FIELDS = ['id', 'timestamp', 'formPurpose', 'firstName', 'lastName', 'email',
          'phone', 'helpNeededOffered', 'additionalMaterialsPaths']
"""Canonical ledger header, in column order."""

PATH_DELIMITER = '|'

TEXT_FIELDS = {
    'formPurpose': 'form_purpose',
    'firstName': 'first_name',
    'lastName': 'last_name',
    'email': 'email',
    'phone': 'phone',
    'helpNeededOffered': 'help_needed_offered',
}
"""Free-text form fields, keyed by their ledger column name."""


def get_tzaware_utc_now() -> datetime:
    """Generate a datetime for the current moment in UTC."""
    return datetime.now(UTC)


def join_paths(paths: List[str]) -> str:
    """Encode attachment paths for a single ledger cell."""
    return PATH_DELIMITER.join(paths)


def split_paths(cell: Optional[str]) -> List[str]:
    """Decode a ledger cell into attachment paths; empty segments are dropped."""
    if not cell:
        return []
    return [path for path in cell.split(PATH_DELIMITER) if path]


@dataclass
class Submission:
    """Represents one form entry and the files attached to it."""

    id: str
    timestamp: str
    """ISO-8601 creation time."""

    form_purpose: str = field(default_factory=str)
    first_name: str = field(default_factory=str)
    last_name: str = field(default_factory=str)
    email: str = field(default_factory=str)
    phone: str = field(default_factory=str)
    help_needed_offered: str = field(default_factory=str)
    attachment_paths: List[str] = field(default_factory=list)
    """Paths relative to the attachment root, in upload order."""

    @classmethod
    def create(cls, submission_id: str, fields: Mapping[str, str],
               attachment_paths: List[str],
               now: Optional[datetime] = None) -> 'Submission':
        """Build a new submission from raw form fields."""
        if now is None:
            now = get_tzaware_utc_now()
        text = {attr: str(fields.get(column) or '')
                for column, attr in TEXT_FIELDS.items()}
        return cls(id=submission_id, timestamp=now.isoformat(),
                   attachment_paths=list(attachment_paths), **text)

    def to_row(self) -> List[str]:
        """Generate ledger cells in canonical column order."""
        return [
            self.id,
            self.timestamp,
            self.form_purpose,
            self.first_name,
            self.last_name,
            self.email,
            self.phone,
            self.help_needed_offered,
            join_paths(self.attachment_paths)
        ]

    @classmethod
    def from_row(cls, data: Mapping[str, str]) -> 'Submission':
        """
        Instantiate a :class:`Submission` from a header-to-cell mapping.

        Absent or ``None`` cells become empty strings, so a short or partial
        row still yields a submission.
        """
        def cell(name: str) -> str:
            return data.get(name) or ''

        return cls(
            id=cell('id').strip(),
            timestamp=cell('timestamp'),
            attachment_paths=split_paths(cell('additionalMaterialsPaths')),
            **{attr: cell(column) for column, attr in TEXT_FIELDS.items()}
        )

    def to_dict(self) -> Dict[str, object]:
        """Generate the wire representation, keyed by ledger column name."""
        data: Dict[str, object] = {'id': self.id, 'timestamp': self.timestamp}
        for column, attr in TEXT_FIELDS.items():
            data[column] = getattr(self, attr)
        data['additionalMaterialsPaths'] = list(self.attachment_paths)
        return data
