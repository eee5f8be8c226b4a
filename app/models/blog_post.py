import uuid
from sqlalchemy import Column, String, Boolean, DateTime, func, Text, JSON, Uuid
from app.db.session import Base

class BlogPost(Base):
    __tablename__ = "blog_posts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    content = Column(Text, nullable=True)
    feature_image = Column(Text, nullable=True)
    excerpt = Column(Text, nullable=True)
    author = Column(String(255), default="Admin")
    tags = Column(JSON, nullable=False, default=list)
    published = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
