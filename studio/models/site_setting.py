"""Key/value site settings (e.g. access_mode)."""
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text

from studio.db.session import Base


class SiteSetting(Base):
    __tablename__ = "site_settings"

    setting_name = Column(String(100), primary_key=True)
    setting_value = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
