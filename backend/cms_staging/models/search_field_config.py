from cms_staging.extensions import db
from .timestamp_mixin import TimestampMixin

class SearchFieldConfig(TimestampMixin, db.Model):
    __tablename__ = "search_field_configs"

    id = db.Column(db.String(36), primary_key=True)
    bundle = db.Column(db.String(64), nullable=False, index=True)
    field_name = db.Column(db.String(64), nullable=False)
    weight = db.Column(db.String(1), nullable=False, default="C")  # A (highest) .. D
