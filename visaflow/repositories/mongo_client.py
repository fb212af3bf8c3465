"""MongoDB Client - Connection and Collection Management"""
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional
from pymongo import MongoClient as PyMongoClient
from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import ConnectionFailure

from ..domain.errors import StorageUnavailableError
from ..utils.logger import get_logger

logger = get_logger(__name__)

WORKFLOW_INSTANCES = "workflow_instances"
AUDIT_EVENTS = "workflow_audit_events"


@contextmanager
def storage_guard(operation: str) -> Iterator[None]:
    """Translate driver connectivity failures into StorageUnavailableError"""
    try:
        yield
    except ConnectionFailure as e:
        logger.error(f"MongoDB unavailable during {operation}: {e}", extra={"action": operation})
        raise StorageUnavailableError(
            "Storage is temporarily unavailable. Please retry.",
            details={"operation": operation}
        ) from e


class MongoConnection:
    """
    Owns the MongoDB client for the lifetime of the application.
    
    Opened in the application lifespan and closed at shutdown. A pre-built
    client may be injected (tests pass a mongomock client); the connection
    then skips the startup ping.
    """
    
    def __init__(
        self,
        uri: str,
        database_name: str,
        client: Optional[PyMongoClient] = None
    ):
        self._uri = uri
        self._database_name = database_name
        self._client = client
        self._owns_client = client is None
        self._database: Optional[Database] = None
    
    @property
    def is_open(self) -> bool:
        return self._database is not None
    
    @property
    def database(self) -> Database:
        if self._database is None:
            raise StorageUnavailableError(
                "Storage connection is not open",
                details={"database": self._database_name}
            )
        return self._database
    
    def open(self) -> None:
        """Create the client (if not injected) and select the database"""
        if self._client is None:
            logger.info(f"Connecting to MongoDB: {self._uri}")
            self._client = PyMongoClient(
                self._uri,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=5000,
                socketTimeoutMS=30000,
                tz_aware=True,
            )
        if self._owns_client:
            try:
                self._client.admin.command("ping")
                logger.info("MongoDB connection successful")
            except ConnectionFailure as e:
                # The driver reconnects on demand; requests report 503 until then
                logger.error(f"MongoDB connection failed: {e}")
        self._database = self._client[self._database_name]
        logger.info(f"Using database: {self._database_name}")
    
    def close(self) -> None:
        """Close the client"""
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None
        self._database = None
        logger.info("MongoDB connection closed")
    
    def get_collection(self, name: str) -> Collection:
        """Get a collection from the database"""
        return self.database[name]
    
    def create_indexes(self) -> None:
        """Create all required indexes"""
        logger.info("Creating MongoDB indexes...")
        
        with storage_guard("create_indexes"):
            instances = self.get_collection(WORKFLOW_INSTANCES)
            instances.create_index("workflow_id", unique=True)
            instances.create_index("owner_id", unique=True)
            instances.create_index("created_at")
            
            audit_events = self.get_collection(AUDIT_EVENTS)
            audit_events.create_index("audit_event_id", unique=True)
            audit_events.create_index([("owner_id", ASCENDING), ("timestamp", DESCENDING)])
            audit_events.create_index("correlation_id")
        
        logger.info("MongoDB indexes created successfully")
    
    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB health"""
        try:
            self.database.client.admin.command("ping")
            return {
                "status": "healthy",
                "database": self._database_name,
                "connection": "ok"
            }
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                "status": "unhealthy",
                "database": self._database_name,
                "error": str(e)
            }
