from cms_staging.extensions import db
from .timestamp_mixin import TimestampMixin

class Tag(TimestampMixin, db.Model):
    __tablename__ = "tags"

    id = db.Column(db.String(36), primary_key=True)
    category_id = db.Column(db.String(64), nullable=False, index=True)
    label = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    weight = db.Column(db.Integer, nullable=False, default=0)
