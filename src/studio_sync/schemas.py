"""Entity and settings schema definitions."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EntityType(str, Enum):
    """Record collections owned by the engine."""

    CLIENT = "client"
    PROJECT = "project"
    INVOICE = "invoice"
    SERVICE = "service"
    ARTICLE = "article"
    REQUEST = "request"
    EXPENSE = "expense"
    SOCIAL_POST = "social_post"
    INTEGRATION = "integration"
    DECISION_PAGE = "decision_page"
    CONTENT_PLAN = "content_plan"


class ReconcilePolicy(str, Enum):
    """How remote rows are combined with the current collection at bootstrap."""

    # Seed first, then remote-only rows; seed wins on id collisions.
    SEED_MERGE = "seed_merge"
    # Non-empty remote rows replace the collection; empty/errored fetches keep it.
    REPLACE_UNLESS_EMPTY = "replace_unless_empty"


class InsertPosition(str, Enum):
    """Where newly created records land in their collection."""

    APPEND = "append"
    PREPEND = "prepend"


class MergeStrategy(str, Enum):
    """How a settings field absorbs an incoming value."""

    REPLACE = "replace"
    SHALLOW_MERGE = "shallow_merge"


class UnknownEntityError(KeyError):
    """Raised when an entity name does not match any registered schema."""


class EntitySchema(BaseModel):
    """Schema definition for one entity collection."""

    entity: EntityType
    collection: str = Field(description="SiteData attribute holding the records")
    table: str = Field(description="Remote table name")
    id_prefix: str
    category: str = Field(description="Activity log category for mutations")
    audit_field: str | None = Field(default=None, description="Creation timestamp field")
    position: InsertPosition = InsertPosition.APPEND
    policy: ReconcilePolicy = ReconcilePolicy.REPLACE_UNLESS_EMPTY
    defaults: dict[str, Any] = Field(default_factory=dict)
    label_field: str = Field(default="name", description="Field used in log labels")

    def describe(self, record: dict[str, Any]) -> str:
        """Human-readable label for a record of this type."""
        return str(record.get(self.label_field) or record.get("title") or record.get("id", "?"))


CLIENT_SCHEMA = EntitySchema(
    entity=EntityType.CLIENT,
    collection="clients",
    table="clients",
    id_prefix="c-",
    category="crm",
)

PROJECT_SCHEMA = EntitySchema(
    entity=EntityType.PROJECT,
    collection="projects",
    table="projects",
    id_prefix="p-",
    category="projects",
    label_field="title",
)

INVOICE_SCHEMA = EntitySchema(
    entity=EntityType.INVOICE,
    collection="invoices",
    table="invoices",
    id_prefix="inv-",
    category="billing",
    label_field="invoiceNumber",
)

SERVICE_SCHEMA = EntitySchema(
    entity=EntityType.SERVICE,
    collection="services",
    table="services",
    id_prefix="srv-",
    category="services",
    label_field="title",
)

ARTICLE_SCHEMA = EntitySchema(
    entity=EntityType.ARTICLE,
    collection="articles",
    table="articles",
    id_prefix="art-",
    category="content",
    audit_field="date",
    position=InsertPosition.PREPEND,
    policy=ReconcilePolicy.SEED_MERGE,
    defaults={"status": "draft", "views": 0, "seoScore": 0, "tags": [], "keywords": []},
    label_field="title",
)

REQUEST_SCHEMA = EntitySchema(
    entity=EntityType.REQUEST,
    collection="service_requests",
    table="service_requests",
    id_prefix="req-",
    category="crm",
    audit_field="date",
    position=InsertPosition.PREPEND,
    defaults={"messages": [], "status": "new"},
    label_field="serviceTitle",
)

EXPENSE_SCHEMA = EntitySchema(
    entity=EntityType.EXPENSE,
    collection="expenses",
    table="expenses",
    id_prefix="exp-",
    category="billing",
    audit_field="date",
    position=InsertPosition.PREPEND,
    label_field="title",
)

SOCIAL_POST_SCHEMA = EntitySchema(
    entity=EntityType.SOCIAL_POST,
    collection="social_posts",
    table="social_posts",
    id_prefix="post-",
    category="marketing",
    position=InsertPosition.PREPEND,
    defaults={"status": "scheduled"},
    label_field="platform",
)

INTEGRATION_SCHEMA = EntitySchema(
    entity=EntityType.INTEGRATION,
    collection="integrations",
    table="integrations",
    id_prefix="int-",
    category="marketing",
    defaults={"status": "disconnected"},
)

DECISION_PAGE_SCHEMA = EntitySchema(
    entity=EntityType.DECISION_PAGE,
    collection="decision_pages",
    table="decision_pages",
    id_prefix="dp-",
    category="content",
    audit_field="date",
    position=InsertPosition.PREPEND,
    label_field="title",
)

CONTENT_PLAN_SCHEMA = EntitySchema(
    entity=EntityType.CONTENT_PLAN,
    collection="content_plan",
    table="content_plan",
    id_prefix="plan-",
    category="content",
    defaults={"status": "planned"},
    label_field="topic",
)

ENTITY_SCHEMAS: dict[EntityType, EntitySchema] = {
    schema.entity: schema
    for schema in (
        CLIENT_SCHEMA,
        PROJECT_SCHEMA,
        INVOICE_SCHEMA,
        SERVICE_SCHEMA,
        ARTICLE_SCHEMA,
        REQUEST_SCHEMA,
        EXPENSE_SCHEMA,
        SOCIAL_POST_SCHEMA,
        INTEGRATION_SCHEMA,
        DECISION_PAGE_SCHEMA,
        CONTENT_PLAN_SCHEMA,
    )
}


def get_schema(entity: EntityType | str) -> EntitySchema:
    """Look up the schema for an entity type or its string value."""
    try:
        return ENTITY_SCHEMAS[EntityType(entity)]
    except ValueError:
        raise UnknownEntityError(entity) from None


class SettingsField(BaseModel):
    """One settings-class field of SiteData and its remote column."""

    name: str = Field(description="SiteData attribute")
    key: str = Field(description="Column in the singleton settings row")
    strategy: MergeStrategy


SETTINGS_ROW_ID = "main"
SETTINGS_TABLE = "site_settings"
ACTIVITY_TABLE = "activity_log"

SETTINGS_FIELDS: dict[str, SettingsField] = {
    f.name: f
    for f in (
        SettingsField(name="brand", key="brand", strategy=MergeStrategy.SHALLOW_MERGE),
        SettingsField(
            name="contact_info", key="contactInfo", strategy=MergeStrategy.SHALLOW_MERGE
        ),
        SettingsField(name="ai_config", key="aiConfig", strategy=MergeStrategy.SHALLOW_MERGE),
        SettingsField(name="features", key="features", strategy=MergeStrategy.SHALLOW_MERGE),
        SettingsField(name="faqs", key="faqs", strategy=MergeStrategy.REPLACE),
        SettingsField(name="testimonials", key="testimonials", strategy=MergeStrategy.REPLACE),
        SettingsField(name="process", key="process", strategy=MergeStrategy.REPLACE),
        SettingsField(name="stats", key="stats", strategy=MergeStrategy.REPLACE),
        SettingsField(name="profile", key="profile", strategy=MergeStrategy.SHALLOW_MERGE),
        SettingsField(name="autopilot", key="autopilot", strategy=MergeStrategy.SHALLOW_MERGE),
        SettingsField(name="hidden_ids", key="hiddenIds", strategy=MergeStrategy.REPLACE),
    )
}

SETTINGS_KEYS: dict[str, SettingsField] = {f.key: f for f in SETTINGS_FIELDS.values()}
