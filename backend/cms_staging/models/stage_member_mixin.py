from sqlalchemy.orm import declared_attr
from cms_staging.extensions import db

class StageMemberMixin:
    """
    Direct stage membership for content rows (items, aliases, menu links).

    A row lives in exactly one stage; staging it is an UPDATE of stage_id.
    """

    @declared_attr
    def stage_id(cls):
        return db.Column(
            db.String(64),
            db.ForeignKey("stages.id", ondelete="RESTRICT"),
            nullable=False,
            index=True
        )
