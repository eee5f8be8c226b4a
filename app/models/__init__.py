from app.models.user import User, user_favorites
from app.models.property import Property
from app.models.blog_post import BlogPost
from app.models.lead import ContactMessage, Quote
