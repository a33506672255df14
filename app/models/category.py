from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime
from app.database import Base

SLUG_MIN_LENGTH = 2
SLUG_MAX_LENGTH = 100


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), unique=True, nullable=False, index=True)
    slug = Column(String(SLUG_MAX_LENGTH), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    parent_id = Column(String(36), ForeignKey("categories.id"), nullable=True, index=True)
    level = Column(Integer, default=0, nullable=False, index=True)
    is_parent = Column(Boolean, default=False, nullable=False)  # True while it has an active child
    is_active = Column(Boolean, default=True, nullable=False, index=True)  # False means soft-deleted
    sort_order = Column(Integer, default=0, nullable=False)
    image_url = Column(String(500), nullable=True)
    meta_title = Column(String(255), nullable=True)  # SEO meta title
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    parent = relationship("Category", remote_side=[id], backref="children")

    def __repr__(self):
        return f"<Category {self.slug} level={self.level}>"
