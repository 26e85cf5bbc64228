from cms_staging.extensions import db
from .timestamp_mixin import TimestampMixin

class Category(TimestampMixin, db.Model):
    __tablename__ = "categories"

    id = db.Column(db.String(64), primary_key=True)
    label = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    hierarchy = db.Column(db.Integer, nullable=False, default=0)  # 0 flat, 1 single, 2 multiple
    weight = db.Column(db.Integer, nullable=False, default=0)
