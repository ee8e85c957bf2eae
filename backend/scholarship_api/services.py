"""Business logic services used by HTTP controllers.

Services coordinate repositories and external providers for the few
operations that do more than a single pass-through call: issuing
tokens, creating and deleting users, and payments. Errors surface as
`ServiceError` subclasses which controllers map to HTTP status codes.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from bson import ObjectId
from pymongo.database import Database
from pymongo.errors import PyMongoError

from . import models, repositories
from .config import Settings, settings
from .providers import FirebaseIdentityProvider, IdentityNotFound, ProviderError, StripePaymentProvider, to_minor_units

logger = logging.getLogger("scholarship_api.services")


class ServiceError(Exception):
    status_code = 500


class NotFound(ServiceError):
    status_code = 404


class InvalidInput(ServiceError):
    status_code = 400


class AuthService:
    """Signs access tokens carrying the caller's email."""
    def __init__(self, config: Settings = settings):
        self.config = config

    def issue_token(self, email: Optional[str]) -> str:
        """Return a signed JWT for `email` valid for JWT_EXPIRE_HOURS."""
        if not email:
            raise InvalidInput("Email is required")
        now = datetime.now(timezone.utc)
        payload = {
            "email": email,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(hours=self.config.JWT_EXPIRE_HOURS)).timestamp()),
        }
        return jwt.encode(payload, self.config.JWT_SECRET, algorithm=self.config.JWT_ALGORITHM)


class UserService:
    """User creation and the multi-step user deletion."""
    def __init__(self, db: Database, identities: Optional[FirebaseIdentityProvider] = None):
        self.repo = repositories.UserRepository(db)
        self.identities = identities

    def create(self, name: Optional[str], email: str, photo_url: Optional[str],
               created_at: Optional[datetime] = None) -> Dict[str, Any]:
        """Insert a new student. A client supplied `created_at` is kept as is."""
        doc = {
            "name": name,
            "email": email,
            "photoURL": photo_url,
            "role": models.ROLE_STUDENT,
            "createdAt": created_at or models.utcnow(),
        }
        return self.repo.insert(doc)

    def delete(self, oid: ObjectId) -> Dict[str, Any]:
        """Delete the identity record and then the stored user.

        The user is first flagged `deletionPending`. If the identity
        provider fails (other than "not found") the flag is removed and
        `ProviderError` propagates with the record intact. If the final
        store delete fails the flag stays on the document so the
        half-deleted user can be found and reconciled.
        """
        user = self.repo.get(oid)
        if not user:
            raise NotFound("User not found")
        email = user.get("email")
        self.repo.set_deletion_pending(oid, True)
        if email and self.identities is not None:
            try:
                self.identities.delete_by_email(email)
            except IdentityNotFound:
                logger.info("no identity record for %s; deleting stored user only", email)
            except ProviderError:
                self.repo.set_deletion_pending(oid, False)
                raise
        try:
            return self.repo.delete(oid)
        except PyMongoError:
            logger.error("user %s left with %s=true after identity deletion", oid, models.DELETION_PENDING)
            raise


class PaymentService:
    """Payment intents through the provider and trusted payment records."""
    def __init__(self, db: Database, provider: Optional[StripePaymentProvider] = None):
        self.repo = repositories.PaymentRepository(db)
        self.provider = provider

    def create_intent(self, amount: Optional[float]) -> str:
        """Return the client secret of a new intent for `amount` major units."""
        # finite and worth at least one minor unit
        if amount is None or not math.isfinite(amount) or to_minor_units(amount) <= 0:
            raise InvalidInput("Invalid amount")
        if self.provider is None:
            raise ProviderError("payment provider unavailable")
        return self.provider.create_intent(amount)

    def record(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        # the record is client input; capture is not checked with the provider
        doc = models.stamp(fields, status=models.PAYMENT_STATUS_PAID)
        return self.repo.insert(doc)
