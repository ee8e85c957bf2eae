"""Third-party service clients: Stripe payments and Firebase identities.

Both clients are thin wrappers that translate SDK exceptions into
`ProviderError` (or `IdentityNotFound`) so handlers only deal with one
error family. Instances are created lazily on first use and injected
through the `get_payment_provider` / `get_identity_provider`
dependencies, which tests override with fakes.
"""

import logging
from functools import lru_cache
from typing import Optional

import firebase_admin
import stripe
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin.exceptions import FirebaseError

from .config import settings

logger = logging.getLogger("scholarship_api.providers")


class ProviderError(Exception):
    """A call to an external service failed."""


class IdentityNotFound(ProviderError):
    """The identity provider has no account for the requested email."""


def to_minor_units(amount: float) -> int:
    """Convert a major-unit amount (e.g. dollars) to integer cents."""
    return int(round(amount * 100))


class StripePaymentProvider:
    """Creates PaymentIntents and hands back their client secret."""

    def __init__(self, api_key: Optional[str], currency: str = "usd"):
        self.api_key = api_key
        self.currency = currency

    def create_intent(self, amount: float) -> str:
        if not self.api_key:
            raise ProviderError("STRIPE_SECRET_KEY is not configured")
        try:
            intent = stripe.PaymentIntent.create(
                amount=to_minor_units(amount),
                currency=self.currency,
                payment_method_types=["card"],
                api_key=self.api_key,
            )
        except stripe.StripeError as exc:
            raise ProviderError(f"stripe: {exc}") from exc
        logger.info("created payment intent %s", intent.id)
        return intent.client_secret


class FirebaseIdentityProvider:
    """Looks up and deletes Firebase Authentication users by email."""

    def __init__(self, credentials_path: Optional[str] = None):
        self.credentials_path = credentials_path
        self._app = None

    def _get_app(self):
        if self._app is None:
            try:
                self._app = firebase_admin.get_app()
            except ValueError:
                cred = credentials.Certificate(self.credentials_path) if self.credentials_path else None
                self._app = firebase_admin.initialize_app(cred)
        return self._app

    def delete_by_email(self, email: str) -> None:
        """Delete the account registered under `email`.

        Raises `IdentityNotFound` when no such account exists and
        `ProviderError` for any other failure.
        """
        try:
            app = self._get_app()
            record = firebase_auth.get_user_by_email(email, app=app)
            firebase_auth.delete_user(record.uid, app=app)
        except firebase_auth.UserNotFoundError as exc:
            raise IdentityNotFound(email) from exc
        except (FirebaseError, ValueError) as exc:
            raise ProviderError(f"firebase: {exc}") from exc
        logger.info("deleted identity record for %s", email)


@lru_cache(maxsize=1)
def get_payment_provider() -> StripePaymentProvider:
    return StripePaymentProvider(settings.STRIPE_SECRET_KEY, settings.PAYMENT_CURRENCY)


@lru_cache(maxsize=1)
def get_identity_provider() -> FirebaseIdentityProvider:
    return FirebaseIdentityProvider(settings.FIREBASE_CREDENTIALS)
