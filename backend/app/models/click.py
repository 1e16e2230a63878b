from sqlalchemy import Column, Integer, String, Float, ForeignKey, Index
from sqlalchemy.orm import relationship
from ..database import Base, UTCDateTime


class Click(Base):
    """Click statistics model"""
    __tablename__ = "clicks"

    id = Column(String(32), primary_key=True)
    link_id = Column(String(32), ForeignKey("links.id", ondelete="CASCADE"), nullable=False)
    short_code = Column(String(52), nullable=False)
    timestamp = Column(UTCDateTime, nullable=False)
    ip_address = Column(String(45), nullable=True)  # IPv4 or IPv6
    user_agent = Column(String(512), nullable=True)
    referer = Column(String(512), nullable=True)
    session_id = Column(String(64), nullable=False)

    # Location
    country = Column(String(100), nullable=True)
    country_code = Column(String(8), nullable=True)
    region = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    timezone = Column(String(64), nullable=True)
    isp = Column(String(255), nullable=True)
    accuracy = Column(Float, nullable=True)
    location_source = Column(String(10), nullable=False, default="ip")

    # Device
    device_type = Column(String(10), nullable=False, default="unknown")
    browser = Column(String(50), nullable=False, default="Unknown")
    browser_version = Column(String(20), nullable=False, default="Unknown")
    os = Column(String(50), nullable=False, default="Unknown")
    os_version = Column(String(20), nullable=False, default="Unknown")
    screen_width = Column(Integer, nullable=True)
    screen_height = Column(Integer, nullable=True)

    # Relationship with link
    link = relationship("Link", back_populates="clicks")

    __table_args__ = (
        Index('idx_clicks_link_timestamp', 'link_id', 'timestamp'),
    )

    def __repr__(self):
        return f"<Click {self.id} for link {self.link_id}>"
