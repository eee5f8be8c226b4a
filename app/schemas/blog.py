from typing import Optional, List
from pydantic import BaseModel, UUID4
from datetime import datetime


class BlogPost(BaseModel):
    id: UUID4
    title: str
    slug: str
    content: Optional[str] = None
    feature_image: Optional[str] = None
    excerpt: Optional[str] = None
    author: Optional[str] = None
    tags: List[str] = []
    published: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Compact post for the public listing
class BlogPostSummary(BaseModel):
    id: UUID4
    title: str
    slug: str
    excerpt: Optional[str] = None
    author: Optional[str] = None
    tags: List[str] = []
    feature_image: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
