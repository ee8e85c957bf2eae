"""Repository classes encapsulating collection operations.

Each repository wraps a single MongoDB collection. Methods perform one
store call each and return plain JSON-ready values: documents have their
`_id` rendered as a hex string and write results are reduced to the
counters clients rely on.
"""

from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import DESCENDING
from pymongo.database import Database

from . import models


def serialize(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Copy a stored document, turning its ObjectId into a string."""
    out = dict(doc)
    if isinstance(out.get("_id"), ObjectId):
        out["_id"] = str(out["_id"])
    return out


class DocumentRepository:
    """Insert/list/update/delete on one collection."""
    collection_name: str = ""

    def __init__(self, db: Database):
        self.collection = db[self.collection_name]

    def insert(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        result = self.collection.insert_one(doc)
        return {"acknowledged": result.acknowledged, "insertedId": str(result.inserted_id)}

    def list_newest_first(self, query: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Return every matching document ordered by `createdAt` descending."""
        cursor = self.collection.find(query or {}).sort("createdAt", DESCENDING)
        return [serialize(d) for d in cursor]

    def get(self, oid: ObjectId) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({"_id": oid})

    def update_fields(self, oid: ObjectId, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Merge `fields` into the document with `$set`."""
        result = self.collection.update_one({"_id": oid}, {"$set": fields})
        return {
            "acknowledged": result.acknowledged,
            "matchedCount": result.matched_count,
            "modifiedCount": result.modified_count,
        }

    def delete(self, oid: ObjectId) -> Dict[str, Any]:
        result = self.collection.delete_one({"_id": oid})
        return {"acknowledged": result.acknowledged, "deletedCount": result.deleted_count}


class UserRepository(DocumentRepository):
    collection_name = models.USERS

    def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Return the user document for `email` or `None`."""
        return self.collection.find_one({"email": email})

    def set_deletion_pending(self, oid: ObjectId, pending: bool) -> None:
        if pending:
            self.collection.update_one({"_id": oid}, {"$set": {models.DELETION_PENDING: True}})
        else:
            self.collection.update_one({"_id": oid}, {"$unset": {models.DELETION_PENDING: ""}})


class ScholarshipRepository(DocumentRepository):
    collection_name = models.SCHOLARSHIPS


class ApplicationRepository(DocumentRepository):
    collection_name = models.APPLICATIONS


class ReviewRepository(DocumentRepository):
    collection_name = models.REVIEWS


class PaymentRepository(DocumentRepository):
    collection_name = models.PAYMENTS

    def list_for_owner(self, email: str) -> List[Dict[str, Any]]:
        """Payments made by `email`, newest first."""
        return self.list_newest_first({"userEmail": email})
