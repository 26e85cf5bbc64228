from cms_staging.extensions import db
from .base import BaseModel
from .stage_member_mixin import StageMemberMixin

class Item(BaseModel, StageMemberMixin):
    __tablename__ = "items"

    item_type = db.Column(db.String(64), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    status = db.Column(db.Integer, nullable=False, default=1)  # 1 published, 0 unpublished
    fields = db.Column(db.JSON(none_as_null=True), default=dict)
    author_id = db.Column(db.String(36), nullable=True)
