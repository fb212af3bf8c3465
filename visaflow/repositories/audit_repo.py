"""Audit Repository - Data access for audit events"""
from typing import List
from pymongo import DESCENDING
from pymongo.collection import Collection

from .mongo_client import MongoConnection, AUDIT_EVENTS, storage_guard
from ..domain.models import AuditEvent
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AuditRepository:
    """Repository for audit event operations (append-only)"""
    
    def __init__(self, connection: MongoConnection):
        self._audit_events: Collection = connection.get_collection(AUDIT_EVENTS)
    
    def create_events_bulk(self, events: List[AuditEvent]) -> List[AuditEvent]:
        """Create multiple audit events"""
        if not events:
            return []
        
        docs = []
        for event in events:
            doc = event.model_dump(mode="json")
            # Keep timestamps native so they sort as dates
            doc["timestamp"] = event.timestamp
            doc["_id"] = event.audit_event_id
            docs.append(doc)
        
        with storage_guard("create_audit_events"):
            self._audit_events.insert_many(docs)
        logger.info(f"Created {len(events)} audit events", extra={"owner_id": events[0].owner_id})
        return events
    
    def get_events_for_owner(
        self,
        owner_id: str,
        skip: int = 0,
        limit: int = 100
    ) -> List[AuditEvent]:
        """Get audit events for an owner's workflow"""
        with storage_guard("get_audit_events"):
            cursor = (
                self._audit_events.find({"owner_id": owner_id})
                .sort("timestamp", DESCENDING)
                .skip(skip)
                .limit(limit)
            )
            events = []
            for doc in cursor:
                doc.pop("_id", None)
                events.append(AuditEvent.model_validate(doc))
        return events
