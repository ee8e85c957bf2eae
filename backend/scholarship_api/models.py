"""Collection names and document-level constants.

Documents are stored as plain dictionaries; this module only pins down
the collection each resource lives in, the enumerated field values and
the helpers that stamp server-side fields onto a new document.
"""

from datetime import datetime, timezone
from typing import Any, Dict

USERS = "users"
SCHOLARSHIPS = "scholarships"
APPLICATIONS = "applications"
REVIEWS = "reviews"
PAYMENTS = "payments"

ROLE_STUDENT = "student"
ROLE_MODERATOR = "moderator"
ROLE_ADMIN = "admin"

APPLICATION_PENDING = "pending"
APPLICATION_UNPAID = "unpaid"
PAYMENT_STATUS_PAID = "paid"

# set on a user while its identity record is being removed
DELETION_PENDING = "deletionPending"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def stamp(fields: Dict[str, Any], **defaults: Any) -> Dict[str, Any]:
    """Return a new document from `fields` plus forced defaults and `createdAt`.

    Server values win over anything the client supplied under the same key.
    """
    doc = dict(fields)
    doc.update(defaults)
    doc["createdAt"] = utcnow()
    return doc
