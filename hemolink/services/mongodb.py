# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with atomic document operations and connection pooling.

This is the document store the core is written against: lookups by id and
filter, radius queries over GeoJSON points, atomic upserts keyed on unique
indexes, conditional (compare-and-swap) updates, deletes and counts.
Documents are returned with ``_id`` rendered as a string ``id``.
"""

import os
import logging
from datetime import datetime
from typing import List, Dict, Optional, Any, Tuple
from pymongo import MongoClient, ASCENDING, DESCENDING, GEOSPHERE, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    ServerSelectionTimeoutError,
    DuplicateKeyError
)
from bson import ObjectId
from bson.errors import InvalidId

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


class MongoDBService:
    """MongoDB document store with connection pooling."""

    def __init__(self, connection_string: str = None, database_name: str = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/hemolink_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'hemolink_dev')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    maxIdleTimeMS=self.max_idle_time_ms,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True
                )
                # Test connection
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                raise

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        """Get MongoDB collection."""
        return self.database[collection_name]

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            server_info = self.client.server_info()

            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'version': server_info.get('version'),
                'database': self.database_name,
                'connection_pool_size': self.max_pool_size
            }
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    # Document helpers

    def _validate_object_id(self, doc_id: str) -> ObjectId:
        """Validate and convert string ID to ObjectId."""
        try:
            return ObjectId(doc_id)
        except (InvalidId, TypeError):
            raise ValueError(f"Invalid ObjectId format: {doc_id}")

    def _to_public(self, document: Optional[Dict]) -> Optional[Dict]:
        """Render ``_id`` as a string ``id``."""
        if document is None:
            return None
        if "_id" in document:
            document["id"] = str(document.pop("_id"))
        return document

    def _translate_filters(self, filters: Optional[Dict]) -> Dict:
        """Map an ``id`` filter (value or ``$in``/``$nin``/``$ne`` operators) onto ``_id``."""
        query = dict(filters or {})
        if "id" in query:
            value = query.pop("id")
            if isinstance(value, dict):
                translated = {}
                for operator, operand in value.items():
                    if operator in ("$in", "$nin"):
                        translated[operator] = [self._validate_object_id(v) for v in operand]
                    else:
                        translated[operator] = self._validate_object_id(operand)
                query["_id"] = translated
            else:
                query["_id"] = self._validate_object_id(value)
        return query

    def _with_timestamps(self, update: Dict) -> Dict:
        """Stamp ``updatedAt`` on every write and ``createdAt`` on inserts."""
        now = datetime.utcnow()
        update = {op: dict(fields) for op, fields in update.items()}
        update.setdefault("$set", {})["updatedAt"] = now
        update.setdefault("$setOnInsert", {}).setdefault("createdAt", now)
        return update

    # Reads

    def find_by_id(self, collection: str, doc_id: str) -> Optional[Dict]:
        """Find a single document by ID; invalid IDs resolve to None."""
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError as e:
            logger.warning(f"Invalid document ID {doc_id}: {e}")
            return None

        try:
            document = self.get_collection(collection).find_one({"_id": object_id})
            if document is None:
                logger.debug(f"Document {doc_id} not found in {collection}")
            return self._to_public(document)
        except Exception as e:
            logger.error(f"Failed to find document {doc_id} in {collection}: {e}")
            raise

    def find(self, collection: str, filters: Dict = None,
             sort: List[Tuple[str, int]] = None, limit: int = None) -> List[Dict]:
        """Find documents matching a filter."""
        try:
            cursor = self.get_collection(collection).find(self._translate_filters(filters))
            if sort:
                cursor = cursor.sort(sort)
            if limit:
                cursor = cursor.limit(limit)

            documents = [self._to_public(doc) for doc in cursor]
            logger.debug(f"Found {len(documents)} documents in {collection}")
            return documents

        except Exception as e:
            logger.error(f"Failed to find documents in {collection}: {e}")
            raise

    def find_within_radius(self, collection: str, center: Tuple[float, float], radius_km: float,
                           filters: Dict = None, field: str = "location",
                           limit: int = None) -> List[Dict]:
        """
        Find documents whose GeoJSON point lies within a spherical radius.

        Args:
            collection: Collection name
            center: (longitude, latitude) of the circle's center
            radius_km: Radius in kilometres
            filters: Additional filter conditions
            field: Field holding the GeoJSON point
            limit: Maximum number of documents

        Returns:
            Matching documents, nearest first, so a limit keeps the closest
        """
        query = self._translate_filters(filters)
        # Legacy-pair form: $maxDistance is in radians on the same sphere as the ranking
        query[field] = {
            "$nearSphere": [center[0], center[1]],
            "$maxDistance": radius_km / EARTH_RADIUS_KM
        }
        return self.find(collection, query, limit=limit)

    def count(self, collection: str, filters: Dict = None) -> int:
        """Count documents matching a filter."""
        try:
            count = self.get_collection(collection).count_documents(self._translate_filters(filters))
            logger.debug(f"Counted {count} documents in {collection}")
            return count

        except Exception as e:
            logger.error(f"Failed to count documents in {collection}: {e}")
            raise

    # Writes

    def insert(self, collection: str, document: Dict) -> str:
        """Insert a document and return its ID."""
        try:
            document = dict(document)
            doc_id = document.pop("id", None)
            document["_id"] = self._validate_object_id(doc_id) if doc_id else ObjectId()
            now = datetime.utcnow()
            document.setdefault("createdAt", now)
            document.setdefault("updatedAt", now)

            result = self.get_collection(collection).insert_one(document)

            logger.info(f"Created document in {collection}: {result.inserted_id}")
            return str(result.inserted_id)

        except DuplicateKeyError as e:
            logger.error(f"Duplicate key error in {collection}: {e}")
            raise ValueError("Document with this identifier already exists")
        except Exception as e:
            logger.error(f"Failed to create document in {collection}: {e}")
            raise

    def upsert(self, collection: str, key: Dict, update: Dict) -> Dict:
        """
        Atomically create or update the single document identified by ``key``.

        ``key`` must correspond to a unique index. Two concurrent upserts of a
        new key may race on insert; the loser is retried once as an update.
        """
        update = self._with_timestamps(update)
        collection_obj = self.get_collection(collection)
        try:
            document = collection_obj.find_one_and_update(
                key, update, upsert=True, return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError:
            logger.info(f"Upsert race on {collection} {key}, retrying as update")
            document = collection_obj.find_one_and_update(
                key, update, upsert=True, return_document=ReturnDocument.AFTER
            )
        return self._to_public(document)

    def update_where(self, collection: str, filters: Dict, update: Dict) -> Optional[Dict]:
        """
        Atomically update one document matching ``filters``.

        The filter is evaluated at write time, so it doubles as a
        precondition. Returns the updated document, or None when nothing
        matched.
        """
        try:
            query = self._translate_filters(filters)
        except ValueError as e:
            logger.warning(f"Invalid filter for {collection}: {e}")
            return None

        update = self._with_timestamps(update)
        update.pop("$setOnInsert", None)
        try:
            document = self.get_collection(collection).find_one_and_update(
                query, update, return_document=ReturnDocument.AFTER
            )
            if document is None:
                logger.debug(f"No document in {collection} matched conditional update")
            return self._to_public(document)

        except Exception as e:
            logger.error(f"Failed conditional update in {collection}: {e}")
            raise

    def update_by_id(self, collection: str, doc_id: str, update: Dict,
                     precondition: Dict = None) -> Optional[Dict]:
        """Atomically update a document by ID if ``precondition`` still holds."""
        filters = dict(precondition or {})
        filters["id"] = doc_id
        return self.update_where(collection, filters, update)

    def update_many(self, collection: str, filters: Dict, update: Dict) -> int:
        """Update every document matching ``filters``; returns the modified count."""
        try:
            update = self._with_timestamps(update)
            update.pop("$setOnInsert", None)
            result = self.get_collection(collection).update_many(self._translate_filters(filters), update)
            logger.info(f"Updated {result.modified_count} documents in {collection}")
            return result.modified_count

        except ValueError as e:
            logger.warning(f"Invalid filter for {collection}: {e}")
            return 0
        except Exception as e:
            logger.error(f"Failed to update documents in {collection}: {e}")
            raise

    def delete_where(self, collection: str, filters: Dict) -> int:
        """Delete every document matching ``filters``; returns the deleted count."""
        try:
            result = self.get_collection(collection).delete_many(self._translate_filters(filters))
            logger.info(f"Deleted {result.deleted_count} documents from {collection}")
            return result.deleted_count

        except Exception as e:
            logger.error(f"Failed to delete documents in {collection}: {e}")
            raise

    # Index Management

    def create_indexes(self) -> None:
        """Create geospatial, uniqueness and query indexes."""
        try:
            logger.info("Creating MongoDB indexes...")

            users = self.get_collection("users")
            users.create_index([("location", GEOSPHERE)])
            users.create_index([("bloodType", ASCENDING), ("donationEligibility", ASCENDING)])

            hospitals = self.get_collection("hospitals")
            hospitals.create_index([("location", GEOSPHERE)])
            hospitals.create_index("admins")

            requests = self.get_collection("blood_requests")
            requests.create_index([
                ("recipientId", ASCENDING), ("hospitalId", ASCENDING),
                ("bloodType", ASCENDING), ("status", ASCENDING)
            ])
            requests.create_index([("bloodType", ASCENDING), ("urgency", ASCENDING), ("status", ASCENDING)])
            requests.create_index("matchedDonorIds")

            inventory = self.get_collection("blood_inventory")
            inventory.create_index([("hospitalId", ASCENDING), ("bloodType", ASCENDING)], unique=True)
            inventory.create_index([("hospitalId", ASCENDING), ("expiryDate", ASCENDING)])

            notifications = self.get_collection("notifications")
            notifications.create_index([("userId", ASCENDING), ("status", ASCENDING), ("createdAt", DESCENDING)])

            logger.info("MongoDB indexes created successfully")

        except Exception as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise


# Singleton instance for application use
_mongodb_service: Optional[MongoDBService] = None


def get_mongodb_service() -> MongoDBService:
    """Get singleton MongoDB service instance."""
    global _mongodb_service
    if _mongodb_service is None:
        _mongodb_service = MongoDBService()
    return _mongodb_service


def close_mongodb_connection() -> None:
    """Close MongoDB connection (for cleanup)."""
    global _mongodb_service
    if _mongodb_service:
        _mongodb_service.close_connection()
        _mongodb_service = None
