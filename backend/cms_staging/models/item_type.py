from cms_staging.extensions import db
from .timestamp_mixin import TimestampMixin

class ItemType(TimestampMixin, db.Model):
    __tablename__ = "item_types"

    type_name = db.Column(db.String(64), primary_key=True)
    label = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    has_title = db.Column(db.Boolean, nullable=False, default=True)
    title_label = db.Column(db.String(255), nullable=True)
    plugin = db.Column(db.String(64), nullable=False, index=True)
    settings = db.Column(db.JSON, nullable=False, default=dict)
