import mongomock
import pytest

from scholarship_api.database import get_database
from scholarship_api.main import app
from scholarship_api.providers import IdentityNotFound, ProviderError, get_identity_provider, get_payment_provider
from scholarship_api.services import AuthService


class FakeIdentityProvider:
    """Records deletions; emails in `missing` behave like unknown accounts."""
    def __init__(self):
        self.deleted = []
        self.missing = set()
        self.fail_with = None

    def delete_by_email(self, email):
        if self.fail_with is not None:
            raise self.fail_with
        if email in self.missing:
            raise IdentityNotFound(email)
        self.deleted.append(email)


class FakePaymentProvider:
    def __init__(self):
        self.amounts = []
        self.fail = False

    def create_intent(self, amount):
        if self.fail:
            raise ProviderError("card network unavailable")
        self.amounts.append(amount)
        return f"pi_{len(self.amounts)}_secret_test"


@pytest.fixture(autouse=True)
def store():
    """Fresh in-memory database injected in place of MongoDB."""
    db = mongomock.MongoClient()["scholarshipDB"]
    app.dependency_overrides[get_database] = lambda: db
    yield db
    app.dependency_overrides.pop(get_database, None)


@pytest.fixture(autouse=True)
def identities():
    fake = FakeIdentityProvider()
    app.dependency_overrides[get_identity_provider] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_identity_provider, None)


@pytest.fixture(autouse=True)
def payment_provider():
    fake = FakePaymentProvider()
    app.dependency_overrides[get_payment_provider] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_payment_provider, None)


@pytest.fixture
def auth_headers():
    """Build Authorization headers carrying a token for the given email."""
    def _headers(email):
        return {"Authorization": f"Bearer {AuthService().issue_token(email)}"}
    return _headers


@pytest.fixture
def make_user(store):
    """Insert a user with a given role straight into the store."""
    def _make(email, role="student"):
        result = store["users"].insert_one({"name": email.split("@")[0], "email": email, "role": role})
        return str(result.inserted_id)
    return _make
