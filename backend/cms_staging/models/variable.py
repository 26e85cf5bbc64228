from cms_staging.extensions import db
from .timestamp_mixin import TimestampMixin

class Variable(TimestampMixin, db.Model):
    __tablename__ = "variables"

    key = db.Column(db.String(128), primary_key=True)
    value = db.Column(db.JSON, nullable=True)
