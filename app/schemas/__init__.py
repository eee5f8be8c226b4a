from app.schemas.common import PaginatedResponse, ErrorResponse, MessageResponse
from app.schemas.user import (
    User, UserCreate, AdminCreate, UserUpdate, UserAdminView, LoginRequest, Token,
    OTPRequest, OTPVerify, ForgotPasswordRequest, ResetPasswordRequest, NewsletterSubscribe,
)
from app.schemas.property import Property, PropertyWithDistance, NearbyRequest, FavoriteToggle
from app.schemas.blog import BlogPost, BlogPostSummary
from app.schemas.lead import (
    ContactCreate, ContactMessage, ContactSubmitted, QuoteCreate, Quote, QuoteSubmitted,
)
