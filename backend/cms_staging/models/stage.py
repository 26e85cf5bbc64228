from cms_staging.extensions import db
from .base import BaseModel

class Stage(BaseModel):
    __tablename__ = "stages"

    # Opaque id; the live sentinel uses the configured LIVE_STAGE_ID
    id = db.Column(db.String(64), primary_key=True)
    machine_name = db.Column(db.String(64), unique=True, nullable=False, index=True)
    label = db.Column(db.String(255), nullable=False)
    upstream_id = db.Column(
        db.String(64),
        db.ForeignKey("stages.id", ondelete="SET NULL"),
        nullable=True
    )
    status = db.Column(db.String(32), nullable=False, default="open")  # open | locked

    @classmethod
    def ensure_live(cls, live_stage_id: str) -> "Stage":
        """
        Returns the live sentinel row, creating it on first use.
        Caller owns the transaction.
        """
        stage = db.session.get(cls, live_stage_id)
        if stage is None:
            stage = cls()
            stage.id = live_stage_id
            stage.machine_name = live_stage_id
            stage.label = "Live"
            stage.status = "open"
            db.session.add(stage)
            db.session.flush()
        return stage
