from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint

from app.database import Base


class PrincipalEntry(Base):
    __tablename__ = "principals"

    id = Column(Integer, primary_key=True)
    username = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False)
    password_hash = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("username", "role", name="uq_principal_username_role"),
    )
