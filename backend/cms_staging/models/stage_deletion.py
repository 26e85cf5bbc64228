from cms_staging.extensions import db
from .base import utc_now

class StageDeletion(db.Model):
    """Tombstone: the entity is absent within this stage until publish."""
    __tablename__ = "stage_deletions"

    stage_id = db.Column(db.String(64), db.ForeignKey("stages.id", ondelete="RESTRICT"), primary_key=True)
    entity_type = db.Column(db.String(64), primary_key=True)
    entity_id = db.Column(db.String(255), primary_key=True)

    deleted_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utc_now)
    deleted_by = db.Column(db.String(36), nullable=True)

    __table_args__ = (
        db.Index("idx_stage_deletion_stage", "stage_id"),
        db.Index("idx_stage_deletion_entity", "entity_type", "entity_id"),
    )
