from cms_staging.extensions import db

class StageAssociation(db.Model):
    """Points (stage, entity) at the revision that is active in that stage."""
    __tablename__ = "config_stage_associations"

    stage_id = db.Column(db.String(64), db.ForeignKey("stages.id", ondelete="RESTRICT"), primary_key=True)
    entity_type = db.Column(db.String(64), primary_key=True)
    entity_id = db.Column(db.String(255), primary_key=True)

    target_revision_id = db.Column(
        db.String(36),
        db.ForeignKey("config_revisions.id", ondelete="CASCADE"),
        nullable=False
    )

    revision = db.relationship("ConfigRevision", lazy="joined")

    __table_args__ = (
        db.Index("idx_config_stage_assoc_stage", "stage_id"),
        db.Index("idx_config_stage_assoc_entity", "entity_type", "entity_id"),
    )
