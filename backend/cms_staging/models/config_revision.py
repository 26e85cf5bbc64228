from cms_staging.extensions import db
from .base import BaseModel

class ConfigRevision(BaseModel):
    """Immutable snapshot of a config entity's proposed value."""
    __tablename__ = "config_revisions"

    entity_type = db.Column(db.String(64), nullable=False)
    entity_id = db.Column(db.String(255), nullable=False)
    payload = db.Column(db.JSON, nullable=False)
    author_id = db.Column(db.String(36), nullable=True)

    __table_args__ = (
        db.Index("idx_config_revision_entity", "entity_type", "entity_id"),
        db.Index("idx_config_revision_entity_created", "entity_type", "entity_id", "created_at"),
    )
