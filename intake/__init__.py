"""
Intake service for contact and help-request form submissions.

Submissions are recorded in a flat CSV ledger, and any files attached to a
submission are stored on disk under a date-partitioned directory that belongs
to that submission alone. Reviewers can list, inspect, and delete submissions,
and read back attached files, using a separate admin key.

.. note::

   Nothing outside of :mod:`intake.services` should touch the ledger file or
   the attachment tree directly.

"""
