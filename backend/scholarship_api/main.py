"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the scholarship backend.
Controllers are intentionally thin: they validate the request body
against a schema, delegate to a repository or service and return the
store result as JSON. Failures are logged and rendered as
`{"message": ...}` with the matching status code.

Endpoints implemented:
- POST /jwt
- POST, GET /users; DELETE /users/{id}; PATCH /users/{id}/role
- POST, GET /scholarships; PATCH, DELETE /scholarships/{id}
- POST, GET /applications; PATCH, DELETE /applications/{id}
- POST, GET /reviews; PATCH, DELETE /reviews/{id}
- POST /create-payment-intent
- POST, GET /payments
"""

import json
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager, contextmanager
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pymongo.database import Database
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import auth, models, repositories, services
from .config import settings
from .database import connect, get_database
from .providers import (
    FirebaseIdentityProvider,
    ProviderError,
    StripePaymentProvider,
    get_identity_provider,
    get_payment_provider,
)
from .schemas import (
    ApplicationIn,
    ApplicationUpdate,
    PaymentIn,
    PaymentIntentIn,
    ReviewIn,
    ReviewUpdate,
    RoleUpdate,
    ScholarshipIn,
    ScholarshipUpdate,
    TokenRequest,
    UserIn,
)

logger = logging.getLogger("scholarship_api.api")
if not logger.handlers:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    client = connect(settings)
    app.state.db = client[settings.DATABASE_NAME]
    try:
        yield
    finally:
        client.close()
        logger.info("MongoDB client closed")


app = FastAPI(title="Scholarship Management API", lifespan=lifespan)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
            },
            ensure_ascii=True,
        ),
    )
    return response


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [{"loc": [str(part) for part in e.get("loc", ())], "msg": e.get("msg", "")} for e in exc.errors()]
    return JSONResponse(status_code=400, content={"message": "Invalid request", "errors": errors})


@app.exception_handler(PyMongoError)
async def store_error_handler(request: Request, exc: PyMongoError):
    # store failures outside a handler body, e.g. inside a role check
    logger.error("store error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"message": "Database operation failed."})


@contextmanager
def handler_errors(message: str):
    """Turn service, store and provider failures into HTTP errors.

    `message` is used for the 500 response; service errors keep their
    own status code and text.
    """
    try:
        yield
    except services.ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except (PyMongoError, ProviderError):
        logger.exception(message)
        raise HTTPException(status_code=500, detail=message)


def parse_object_id(raw: str) -> ObjectId:
    if not ObjectId.is_valid(raw):
        raise HTTPException(status_code=400, detail="Invalid id")
    return ObjectId(raw)


def _update_body(payload, message: str = "Nothing to update") -> Dict[str, Any]:
    fields = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        raise HTTPException(status_code=400, detail=message)
    return fields


# -------------------- Root & Health --------------------

@app.get("/", response_class=PlainTextResponse)
def home():
    return "Scholarship server is available"


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}


# -------------------- Auth --------------------

@app.post("/jwt")
def issue_jwt(payload: TokenRequest):
    """Issue a one-day access token for the given email."""
    with handler_errors("Failed to issue token."):
        token = services.AuthService().issue_token(payload.email)
    return {"token": token}


# -------------------- Users --------------------

@app.post("/users")
def create_user(payload: UserIn, db: Database = Depends(get_database)):
    """Create a user. The role is always `student`."""
    with handler_errors("Failed to create user."):
        return services.UserService(db).create(payload.name, payload.email, payload.photoURL, payload.createdAt)


@app.get("/users")
def list_users(db: Database = Depends(get_database)):
    with handler_errors("Failed to fetch users."):
        return repositories.UserRepository(db).list_newest_first()


@app.delete("/users/{user_id}")
def delete_user(
    user_id: str,
    db: Database = Depends(get_database),
    identities: FirebaseIdentityProvider = Depends(get_identity_provider),
    claims: dict = Depends(auth.require_admin),
):
    """Delete a user and its identity-provider account (admin only).

    A missing identity account does not block the deletion; any other
    identity failure leaves the stored user in place and returns 500.
    The admin gate reads the caller's user record before the id is parsed,
    so a malformed id costs that one lookup and no other store call.
    """
    oid = parse_object_id(user_id)
    logger.info("admin %s deleting user %s", claims.get("email"), user_id)
    with handler_errors("Failed to delete user."):
        return services.UserService(db, identities).delete(oid)


@app.patch("/users/{user_id}/role")
def update_user_role(user_id: str, payload: RoleUpdate, db: Database = Depends(get_database)):
    oid = parse_object_id(user_id)
    with handler_errors("Failed to update user role."):
        return repositories.UserRepository(db).update_fields(oid, {"role": payload.role})


# -------------------- Scholarships --------------------

@app.post("/scholarships")
def create_scholarship(payload: ScholarshipIn, db: Database = Depends(get_database)):
    with handler_errors("Failed to create scholarship."):
        doc = models.stamp(payload.model_dump())
        return repositories.ScholarshipRepository(db).insert(doc)


@app.get("/scholarships")
def list_scholarships(db: Database = Depends(get_database)):
    with handler_errors("Failed to fetch scholarships."):
        return repositories.ScholarshipRepository(db).list_newest_first()


@app.patch("/scholarships/{scholarship_id}")
def update_scholarship(scholarship_id: str, payload: ScholarshipUpdate, db: Database = Depends(get_database)):
    oid = parse_object_id(scholarship_id)
    fields = _update_body(payload)
    with handler_errors("Failed to update scholarship."):
        return repositories.ScholarshipRepository(db).update_fields(oid, fields)


@app.delete("/scholarships/{scholarship_id}")
def delete_scholarship(scholarship_id: str, db: Database = Depends(get_database)):
    oid = parse_object_id(scholarship_id)
    with handler_errors("Failed to delete scholarship."):
        return repositories.ScholarshipRepository(db).delete(oid)


# -------------------- Applications --------------------

@app.post("/applications")
def create_application(payload: ApplicationIn, db: Database = Depends(get_database)):
    """Submit an application; it starts `pending` and `unpaid`."""
    with handler_errors("Failed to create application."):
        doc = models.stamp(payload.model_dump(), status=models.APPLICATION_PENDING, payment=models.APPLICATION_UNPAID)
        return repositories.ApplicationRepository(db).insert(doc)


@app.get("/applications")
def list_applications(db: Database = Depends(get_database)):
    with handler_errors("Failed to fetch applications."):
        return repositories.ApplicationRepository(db).list_newest_first()


@app.patch("/applications/{application_id}")
def update_application(application_id: str, payload: ApplicationUpdate, db: Database = Depends(get_database)):
    """Change an application's `status` and/or `payment`."""
    oid = parse_object_id(application_id)
    fields = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        raise HTTPException(status_code=400, detail="Nothing to update: provide status or payment")
    with handler_errors("Failed to update application."):
        return repositories.ApplicationRepository(db).update_fields(oid, fields)


@app.delete("/applications/{application_id}")
def delete_application(application_id: str, db: Database = Depends(get_database)):
    oid = parse_object_id(application_id)
    with handler_errors("Failed to delete application."):
        return repositories.ApplicationRepository(db).delete(oid)


# -------------------- Reviews --------------------

@app.post("/reviews")
def create_review(payload: ReviewIn, db: Database = Depends(get_database)):
    with handler_errors("Failed to create review."):
        doc = models.stamp(payload.model_dump())
        return repositories.ReviewRepository(db).insert(doc)


@app.get("/reviews")
def list_reviews(db: Database = Depends(get_database)):
    with handler_errors("Failed to fetch reviews."):
        return repositories.ReviewRepository(db).list_newest_first()


@app.patch("/reviews/{review_id}")
def update_review(review_id: str, payload: ReviewUpdate, db: Database = Depends(get_database)):
    oid = parse_object_id(review_id)
    fields = _update_body(payload)
    with handler_errors("Failed to update review."):
        return repositories.ReviewRepository(db).update_fields(oid, fields)


@app.delete("/reviews/{review_id}")
def delete_review(review_id: str, db: Database = Depends(get_database)):
    oid = parse_object_id(review_id)
    with handler_errors("Failed to delete review."):
        return repositories.ReviewRepository(db).delete(oid)


# -------------------- Payments --------------------

@app.post("/create-payment-intent")
def create_payment_intent(
    payload: PaymentIntentIn,
    db: Database = Depends(get_database),
    provider: StripePaymentProvider = Depends(get_payment_provider),
    claims: dict = Depends(auth.get_current_claims),
):
    """Create a provider payment intent and return its client secret."""
    with handler_errors("Failed to create payment intent."):
        secret = services.PaymentService(db, provider).create_intent(payload.amount)
    return {"clientSecret": secret}


@app.post("/payments")
def create_payment(payload: PaymentIn, db: Database = Depends(get_database), claims: dict = Depends(auth.get_current_claims)):
    """Store a payment record with status `paid`."""
    with handler_errors("Failed to save payment."):
        return services.PaymentService(db).record(payload.model_dump())


@app.get("/payments")
def list_payments(
    email: Optional[str] = None,
    db: Database = Depends(get_database),
    claims: dict = Depends(auth.get_current_claims),
):
    """List the caller's payments (`?email=`) or, for admins, all payments."""
    repo = repositories.PaymentRepository(db)
    if email:
        if email != claims.get("email"):
            raise HTTPException(status_code=403, detail="Forbidden access")
        with handler_errors("Failed to fetch payments."):
            return repo.list_for_owner(email)
    with handler_errors("Failed to fetch payments."):
        auth.enforce(auth.check_role(db, claims, (models.ROLE_ADMIN,)))
        return repo.list_newest_first()


def run():
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
