"""User model."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from app.database import Base, utcnow


class User(Base):
    """Registered account."""

    __tablename__ = "user"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(32), nullable=False)
    email = Column(String(256), unique=True, nullable=False, index=True)
    password = Column(String(256), nullable=False)  # bcrypt hash, never the plaintext
    inactive = Column(Boolean, nullable=False, default=True)
    activation_token = Column(String(64), nullable=True, index=True)
    password_reset_token = Column(String(64), nullable=True, index=True)
    image = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    tokens = relationship("Token", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
