from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from storefront.core.database import Base, utcnow


class RevokedAccessToken(Base):
    __tablename__ = "revoked_access_tokens"

    id = Column(Integer, primary_key=True, index=True)
    # SHA-256 hex digest of the raw access token
    token_hash = Column(String(64), unique=True, index=True, nullable=False)
    expires_at = Column(DateTime, index=True, nullable=False)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="revoked_access_tokens")
