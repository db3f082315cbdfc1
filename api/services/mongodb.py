# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with connection pooling and multi-document transactions.
"""

import os
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import List, Dict, Optional, Any, Iterator, Sequence, Tuple
from pymongo import MongoClient, ASCENDING, DESCENDING, ReturnDocument
from pymongo.client_session import ClientSession
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

SortSpec = Optional[Sequence[Tuple[str, int]]]


def serialize_document(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Convert a MongoDB document into JSON-friendly form (``_id`` becomes ``id``)."""
    if document is None:
        return None

    def convert(value):
        if isinstance(value, ObjectId):
            return str(value)
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, dict):
            return {k: convert(v) for k, v in value.items()}
        if isinstance(value, list):
            return [convert(v) for v in value]
        return value

    result = {k: convert(v) for k, v in document.items() if k != "_id"}
    if "_id" in document:
        result["id"] = str(document["_id"])
    return result


class MongoDBService:
    """MongoDB service with connection pooling and transactional helpers."""

    def __init__(self, connection_string: str = None, database_name: str = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/field_crm_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'field_crm_dev')
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
                    retryReads=True,
                    tz_aware=True
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

    @staticmethod
    def to_object_id(doc_id: Any) -> Optional[ObjectId]:
        """Convert a string ID to ObjectId, or None when it is malformed."""
        if isinstance(doc_id, ObjectId):
            return doc_id
        if not isinstance(doc_id, str):
            return None
        try:
            return ObjectId(doc_id)
        except (InvalidId, TypeError):
            return None

    # Transactions

    @contextmanager
    def transaction(self) -> Iterator[ClientSession]:
        """
        Run a block inside a multi-document transaction.

        Commits when the block exits normally and aborts when it raises.
        Requires a replica set or sharded cluster.
        """
        with self.client.start_session() as session:
            with session.start_transaction():
                logger.debug("MongoDB transaction started")
                yield session
            logger.debug("MongoDB transaction committed")

    # Generic operations

    def find(self, collection: str, filter: Dict = None, sort: SortSpec = None,
             limit: int = 0, session: ClientSession = None) -> List[Dict]:
        """Find documents matching a filter."""
        try:
            cursor = self.get_collection(collection).find(filter or {}, session=session)
            if sort:
                cursor = cursor.sort(list(sort))
            if limit:
                cursor = cursor.limit(limit)
            documents = list(cursor)
            logger.debug(f"Found {len(documents)} documents in {collection}")
            return documents
        except Exception as e:
            logger.error(f"Failed to find documents in {collection}: {e}")
            raise

    def find_one(self, collection: str, filter: Dict, sort: SortSpec = None,
                 session: ClientSession = None) -> Optional[Dict]:
        """Find the first document matching a filter."""
        try:
            return self.get_collection(collection).find_one(
                filter, sort=list(sort) if sort else None, session=session
            )
        except Exception as e:
            logger.error(f"Failed to find document in {collection}: {e}")
            raise

    def find_by_id(self, collection: str, doc_id: str, org_id: Optional[str] = None,
                   session: ClientSession = None) -> Optional[Dict]:
        """Find a document by ID, optionally scoped to an organization."""
        object_id = self.to_object_id(doc_id)
        if object_id is None:
            logger.debug(f"Invalid document ID {doc_id} for {collection}")
            return None

        query: Dict[str, Any] = {"_id": object_id}
        if org_id is not None:
            query["organizationId"] = org_id
        return self.find_one(collection, query, session=session)

    def insert_one(self, collection: str, document: Dict, session: ClientSession = None) -> str:
        """Insert a document and return its ID."""
        try:
            if "_id" not in document:
                document["_id"] = ObjectId()
            result = self.get_collection(collection).insert_one(document, session=session)
            logger.info(f"Created document in {collection}: {result.inserted_id}")
            return str(result.inserted_id)
        except DuplicateKeyError as e:
            logger.error(f"Duplicate key error in {collection}: {e}")
            raise ValueError("Document with this identifier already exists")
        except Exception as e:
            logger.error(f"Failed to create document in {collection}: {e}")
            raise

    def insert_many(self, collection: str, documents: List[Dict], session: ClientSession = None) -> List[str]:
        """Insert several documents and return their IDs."""
        if not documents:
            return []
        try:
            for document in documents:
                document.setdefault("_id", ObjectId())
            result = self.get_collection(collection).insert_many(documents, session=session)
            logger.info(f"Created {len(result.inserted_ids)} documents in {collection}")
            return [str(i) for i in result.inserted_ids]
        except Exception as e:
            logger.error(f"Failed to create documents in {collection}: {e}")
            raise

    def update_one(self, collection: str, filter: Dict, updates: Dict,
                   session: ClientSession = None) -> Optional[Dict]:
        """Apply ``$set`` updates to one document and return the updated document."""
        try:
            document = self.get_collection(collection).find_one_and_update(
                filter,
                {"$set": updates},
                return_document=ReturnDocument.AFTER,
                session=session
            )
            if document is None:
                logger.warning(f"No document updated in {collection}")
            else:
                logger.info(f"Updated document {document['_id']} in {collection}")
            return document
        except Exception as e:
            logger.error(f"Failed to update document in {collection}: {e}")
            raise

    def delete_many(self, collection: str, filter: Dict, session: ClientSession = None) -> int:
        """Delete all documents matching a filter and return how many were removed."""
        try:
            result = self.get_collection(collection).delete_many(filter, session=session)
            logger.info(f"Deleted {result.deleted_count} documents from {collection}")
            return result.deleted_count
        except Exception as e:
            logger.error(f"Failed to delete documents from {collection}: {e}")
            raise

    def find_by_id_and_delete(self, collection: str, doc_id: str,
                              session: ClientSession = None) -> Optional[Dict]:
        """Delete a document by ID and return it, or None if absent."""
        object_id = self.to_object_id(doc_id)
        if object_id is None:
            return None
        try:
            document = self.get_collection(collection).find_one_and_delete(
                {"_id": object_id}, session=session
            )
            if document is not None:
                logger.info(f"Deleted document {doc_id} from {collection}")
            return document
        except Exception as e:
            logger.error(f"Failed to delete document {doc_id} from {collection}: {e}")
            raise

    def count_documents(self, collection: str, filter: Dict = None, session: ClientSession = None) -> int:
        """Count documents matching a filter."""
        try:
            count = self.get_collection(collection).count_documents(filter or {}, session=session)
            logger.debug(f"Counted {count} documents in {collection}")
            return count
        except Exception as e:
            logger.error(f"Failed to count documents in {collection}: {e}")
            raise

    # Index Management

    def create_indexes(self) -> None:
        """Create performance indexes for all collections."""
        try:
            logger.info("Creating MongoDB indexes...")

            users = self.get_collection("users")
            users.create_index("email", unique=True)
            users.create_index([("organizationId", ASCENDING), ("role", ASCENDING)])
            users.create_index("employeeId", unique=True, sparse=True)

            clients = self.get_collection("clients")
            clients.create_index([("organizationId", ASCENDING), ("createdBy", ASCENDING)])
            clients.create_index([("organizationId", ASCENDING), ("clientName", ASCENDING)])

            branches = self.get_collection("branch_locations")
            branches.create_index("client")

            contacts = self.get_collection("contact_persons")
            contacts.create_index("branchLocation")

            meetings = self.get_collection("meetings")
            meetings.create_index("client")
            meetings.create_index([("organizationId", ASCENDING), ("date", DESCENDING)])
            meetings.create_index([("organizationId", ASCENDING), ("createdBy", ASCENDING)])

            projects = self.get_collection("projects")
            projects.create_index("client")
            projects.create_index([("organizationId", ASCENDING), ("assignTo", ASCENDING)])

            expenses = self.get_collection("expenses")
            expenses.create_index([("organizationId", ASCENDING), ("employeeId", ASCENDING), ("date", DESCENDING)])
            expenses.create_index([("organizationId", ASCENDING), ("status", ASCENDING)])

            locations = self.get_collection("location_samples")
            locations.create_index([("employee", ASCENDING), ("timestamp", DESCENDING)])
            locations.create_index([("employee", ASCENDING), ("date", ASCENDING)])

            audit_logs = self.get_collection("audit_logs")
            audit_logs.create_index([("organizationId", ASCENDING), ("timestamp", DESCENDING)])
            audit_logs.create_index([("organizationId", ASCENDING), ("entity", ASCENDING), ("timestamp", DESCENDING)])
            audit_logs.create_index("traceId")

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
