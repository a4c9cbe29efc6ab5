from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from app.database import Base


class SessionEntry(Base):
    __tablename__ = "auth_sessions"

    id = Column(Integer, primary_key=True)
    token = Column(String(128), nullable=False, unique=True, index=True)
    principal_id = Column(
        Integer, ForeignKey("principals.id"), nullable=False, index=True
    )
    role = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
