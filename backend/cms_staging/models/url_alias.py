from cms_staging.extensions import db
from .base import BaseModel
from .stage_member_mixin import StageMemberMixin

class UrlAlias(BaseModel, StageMemberMixin):
    __tablename__ = "url_aliases"

    source = db.Column(db.String(255), nullable=False, index=True)  # /item/<uuid>
    alias = db.Column(db.String(255), nullable=False, index=True)   # /about-us
    language = db.Column(db.String(12), nullable=False, default="en")

    __table_args__ = (
        db.UniqueConstraint("alias", "language", "stage_id", name="uq_url_alias_per_stage"),
    )
