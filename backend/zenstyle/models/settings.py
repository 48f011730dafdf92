from __future__ import annotations

from ..extensions import db
from zenstyle.time_utils import to_utc_z


class AppSetting(db.Model):
    """
    Salon-wide key-value settings (e.g. "working_hours").

    Values are stored as JSON documents and validated by settings_service
    before being written.
    """
    __tablename__ = "app_settings"
    __table_args__ = (
        db.UniqueConstraint("key", name="uq_app_settings_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(128), nullable=False)
    value = db.Column(db.JSON, nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "key": self.key,
            "value": self.value,
            "updated_at": to_utc_z(self.updated_at),
        }
