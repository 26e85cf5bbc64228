from cms_staging.extensions import db
from .base import BaseModel
from .stage_member_mixin import StageMemberMixin

class MenuLink(BaseModel, StageMemberMixin):
    __tablename__ = "menu_links"

    menu_name = db.Column(db.String(64), nullable=False, default="main")
    path = db.Column(db.String(512), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    parent_id = db.Column(db.String(36), db.ForeignKey("menu_links.id", ondelete="SET NULL"), nullable=True)
    weight = db.Column(db.Integer, nullable=False, default=0)
    hidden = db.Column(db.Boolean, nullable=False, default=False)

    __table_args__ = (
        db.UniqueConstraint("path", "menu_name", "stage_id", name="uq_menu_link_per_stage"),
        db.Index("idx_menu_link_menu_stage", "menu_name", "stage_id"),
    )
