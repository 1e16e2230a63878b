from sqlalchemy import Column, Integer, String, Text, Boolean
from sqlalchemy.orm import relationship
from ..database import Base, UTCDateTime


class Link(Base):
    """Short link model"""
    __tablename__ = "links"

    id = Column(String(32), primary_key=True)
    short_code = Column(String(52), unique=True, index=True, nullable=False)
    original_url = Column(String(2048), nullable=False)
    title = Column(String(200), nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    expires_at = Column(UTCDateTime, nullable=True)
    password = Column(String(100), nullable=True)  # Stored in plaintext
    user_id = Column(String(64), nullable=True)

    # Denormalized counters, recomputed on every click insert
    total_clicks = Column(Integer, default=0, nullable=False)
    unique_clicks = Column(Integer, default=0, nullable=False)
    last_click_at = Column(UTCDateTime, nullable=True)

    # Relationship with clicks
    clicks = relationship("Click", back_populates="link", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Link {self.short_code} -> {self.original_url}>"
