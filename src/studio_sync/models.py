"""Pydantic models for the application state and its side records."""

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

Record = dict[str, Any]


class SiteData(BaseModel):
    """Aggregate application state.

    One ordered list of records per entity type, the settings-class
    sub-documents, and the ids of hidden seed records. Instances are
    frozen; every change produces a new instance via ``model_copy``.
    """

    clients: list[Record] = Field(default_factory=list)
    projects: list[Record] = Field(default_factory=list)
    invoices: list[Record] = Field(default_factory=list)
    services: list[Record] = Field(default_factory=list)
    articles: list[Record] = Field(default_factory=list)
    service_requests: list[Record] = Field(default_factory=list, alias="serviceRequests")
    expenses: list[Record] = Field(default_factory=list)
    social_posts: list[Record] = Field(default_factory=list, alias="socialPosts")
    integrations: list[Record] = Field(default_factory=list)
    decision_pages: list[Record] = Field(default_factory=list, alias="decisionPages")
    content_plan: list[Record] = Field(default_factory=list, alias="contentPlan")

    brand: dict[str, Any] = Field(default_factory=dict)
    contact_info: dict[str, Any] = Field(default_factory=dict, alias="contactInfo")
    ai_config: dict[str, Any] = Field(default_factory=dict, alias="aiConfig")
    features: dict[str, Any] = Field(default_factory=dict)
    faqs: list[Any] = Field(default_factory=list)
    testimonials: list[Any] = Field(default_factory=list)
    process: list[Any] = Field(default_factory=list)
    stats: list[Any] = Field(default_factory=list)
    profile: dict[str, Any] = Field(default_factory=dict)
    autopilot: dict[str, Any] = Field(default_factory=dict)
    hidden_ids: list[str] = Field(default_factory=list, alias="hiddenIds")

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def hidden(self) -> frozenset[str]:
        return frozenset(self.hidden_ids)

    def records(self, collection: str) -> list[Record]:
        """Return the record list stored under *collection*."""
        return getattr(self, collection)

    def find(self, collection: str, record_id: str) -> Record | None:
        """Find a record by id, or None."""
        for record in self.records(collection):
            if record.get("id") == record_id:
                return record
        return None

    def to_snapshot(self) -> str:
        """Serialize to the JSON document stored in the local cache."""
        return self.model_dump_json(by_alias=True)


class Severity(str, Enum):
    """Activity entry severity."""

    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ActivityEntry(BaseModel):
    """One event in the bounded activity trail."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = Field(default_factory=utcnow)
    label: str
    category: str
    severity: Severity = Severity.INFO
    metadata: dict[str, Any] | None = None

    model_config = {"populate_by_name": True}


@dataclass
class SyncStatus:
    """Progress of a bulk seed push. Transient, never persisted."""

    total: int = 0
    current: int = 0
    error_count: int = 0
    is_syncing: bool = False

    def snapshot(self) -> "SyncStatus":
        return replace(self)
