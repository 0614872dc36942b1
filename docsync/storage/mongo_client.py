# ==============================================
# MongoSource
# ==============================================
#
# PURPOSE:
#   Read-only access to the source MongoDB database: counting,
#   full fetches for synchronization and loading, random samples
#   for schema inference and validation.
#
# CLASS: MongoSource
# ------------------
#   Stateful: holds the pymongo client.
#
#   Constructor:
#   ------------
#   - __init__(uri, database)
#       Store connection params. Don't connect yet.
#
#   Methods:
#   --------
#   - connect() -> None              ping the server, raise StoreConnectionError
#   - disconnect() -> None
#   - list_collections() -> list[str]
#   - count(collection) -> int
#   - fetch_all(collection, batch_size=500) -> Iterator[dict]
#       Cursor over every document. Finite, not restartable.
#   - fetch_sample(collection, n) -> list[dict]
#       Up to n random documents ($sample).
#
#   Context Manager:
#   ----------------
#   - __enter__ / __exit__ for `with MongoSource(...) as source:` usage.
#
# ==============================================

import logging
from typing import Any, Dict, Iterator, List

from pymongo import MongoClient as PyMongoClient
from pymongo.errors import ConnectionFailure, OperationFailure, ConfigurationError

from docsync.errors import StoreConnectionError

logger = logging.getLogger(__name__)


class MongoSource:
    def __init__(self, uri: str, database: str, server_selection_timeout_ms: int = 5000):
        self.uri = uri
        self.database = database
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self.client = None

    def connect(self) -> None:
        try:
            self.client = PyMongoClient(
                self.uri, serverSelectionTimeoutMS=self.server_selection_timeout_ms
            )
            # Test connection
            self.client.admin.command("ping")
            logger.info("Connected to MongoDB database '%s'", self.database)
        except (ConnectionFailure, ConfigurationError) as e:
            self.disconnect()
            raise StoreConnectionError("MongoDB", f"could not connect: {e}") from e
        except OperationFailure as e:
            self.disconnect()
            raise StoreConnectionError("MongoDB", f"authentication failed: {e}") from e

    def disconnect(self) -> None:
        if self.client:
            self.client.close()
            logger.debug("Disconnected from MongoDB")
            self.client = None

    def _collection(self, name: str):
        if not self.client:
            raise StoreConnectionError("MongoDB", "not connected")
        return self.client[self.database][name]

    def list_collections(self) -> List[str]:
        if not self.client:
            raise StoreConnectionError("MongoDB", "not connected")
        names = self.client[self.database].list_collection_names()
        return sorted(n for n in names if not n.startswith("system."))

    def count(self, collection: str) -> int:
        return self._collection(collection).count_documents({})

    def fetch_all(self, collection: str, batch_size: int = 500) -> Iterator[Dict[str, Any]]:
        cursor = self._collection(collection).find({}, batch_size=batch_size)
        try:
            for document in cursor:
                yield document
        finally:
            cursor.close()

    def fetch_sample(self, collection: str, n: int) -> List[Dict[str, Any]]:
        if n <= 0:
            return []
        pipeline = [{"$sample": {"size": n}}]
        return list(self._collection(collection).aggregate(pipeline))

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
