"""
MongoDB access for the Potion API.

The process owns a single MongoClient, opened in the application lifespan and
closed on shutdown. Handlers never touch the client directly: they receive a
PotionStore, which issues exactly one round-trip to the collection per call.
"""

import logging
import os
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient

logger = logging.getLogger(__name__)

MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "potions")
COLLECTION_NAME = "potion"


def connect(uri: str = MONGO_URI) -> MongoClient:
    client = MongoClient(uri)
    logger.info("Connected to MongoDB database %s", DATABASE_NAME)
    return client


def id_filter(potion_id: str) -> Dict[str, Any]:
    """Match on ObjectId when the string is one, otherwise on the raw value.

    A malformed id simply matches nothing instead of failing the request.
    """
    try:
        return {"_id": ObjectId(potion_id)}
    except (InvalidId, TypeError):
        return {"_id": potion_id}


class PotionStore:
    def __init__(self, collection):
        self.collection = collection

    @classmethod
    def from_client(cls, client: MongoClient, database_name: str = DATABASE_NAME) -> "PotionStore":
        return cls(client[database_name][COLLECTION_NAME])

    def find_all(self) -> List[Dict]:
        return list(self.collection.find())

    def find_by_id(self, potion_id: str) -> List[Dict]:
        return list(self.collection.find(id_filter(potion_id)))

    def names(self) -> List[Any]:
        return [doc.get("name") for doc in self.collection.find({}, {"name": 1})]

    def find_by_vendor(self, vendor_id: str) -> List[Dict]:
        return list(self.collection.find({"vendor_id": vendor_id}))

    def find_by_price_range(self, min_price: Optional[float] = None, max_price: Optional[float] = None) -> List[Dict]:
        bounds: Dict[str, float] = {}
        if min_price is not None:
            bounds["$gte"] = min_price
        if max_price is not None:
            bounds["$lte"] = max_price
        q = {"price": bounds} if bounds else {}
        return list(self.collection.find(q))

    def insert(self, doc: Dict) -> Dict:
        doc = {**doc}
        res = self.collection.insert_one(doc)
        doc["_id"] = res.inserted_id
        return doc

    def update(self, potion_id: str, fields: Dict) -> int:
        if not fields:
            return 0
        res = self.collection.update_one(id_filter(potion_id), {"$set": fields})
        return res.matched_count

    def delete(self, potion_id: str) -> int:
        res = self.collection.delete_one(id_filter(potion_id))
        return res.deleted_count

    def aggregate(self, pipeline: List[Dict]) -> List[Dict]:
        return list(self.collection.aggregate(pipeline))

    def ping(self) -> Dict:
        return self.collection.database.command("ping")
