"""Application settings and validation."""

import os
from typing import Optional


DEFAULT_JWT_SECRET = "change_me_for_prod"


class Settings:
    ENV: str
    MONGODB_URI: str
    DATABASE_NAME: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRE_HOURS: int
    STRIPE_SECRET_KEY: Optional[str]
    PAYMENT_CURRENCY: str
    FIREBASE_CREDENTIALS: Optional[str]
    ALLOW_DEV_CORS: bool
    PORT: int

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.MONGODB_URI = os.getenv("MONGODB_URI") or self._atlas_uri()
        self.DATABASE_NAME = os.getenv("DATABASE_NAME", "scholarshipDB")
        self.JWT_SECRET = os.getenv("JWT_SECRET") or os.getenv("ACCESS_TOKEN_SECRET") or DEFAULT_JWT_SECRET
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRE_HOURS", "24"))
        self.STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY") or None
        self.PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "usd").lower()
        self.FIREBASE_CREDENTIALS = os.getenv("FIREBASE_CREDENTIALS") or None
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.PORT = int(os.getenv("PORT", "3000"))
        self._validate()

    @staticmethod
    def _atlas_uri() -> str:
        user = os.getenv("DB_USER")
        password = os.getenv("DB_PASS")
        if not user or not password:
            return "mongodb://localhost:27017"
        host = os.getenv("DB_HOST", "cluster0.zazcspq.mongodb.net")
        return f"mongodb+srv://{user}:{password}@{host}/?appName=Cluster0"

    def _validate(self):
        if self.ENV != "dev" and self.JWT_SECRET == DEFAULT_JWT_SECRET:
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        if self.JWT_EXPIRE_HOURS <= 0:
            raise RuntimeError("JWT_EXPIRE_HOURS must be positive")


settings = Settings()
