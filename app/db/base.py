from app.db.session import Base
from app.models.user import User
from app.models.property import Property
from app.models.blog_post import BlogPost
from app.models.lead import ContactMessage, Quote
