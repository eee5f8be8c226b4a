from fastapi import APIRouter

# Auth
from app.api.v1.public.auth import router as auth_router

# Public: profile & favorites
from app.api.v1.public.me import router as me_router

# Public: discovery
from app.api.v1.public.properties import router as public_properties_router
from app.api.v1.public.blog import router as public_blog_router

# Public: leads
from app.api.v1.public.leads import contact_router, quotes_router

# Admin
from app.api.v1.admin.properties import router as properties_router
from app.api.v1.admin.blog import router as blog_router
from app.api.v1.admin.leads import contacts_router, quotes_router as admin_quotes_router
from app.api.v1.admin.users import router as users_router

api_router = APIRouter()

# --- Auth ---
api_router.include_router(auth_router)

# --- Public: profile & favorites ---
api_router.include_router(me_router)

# --- Public: discovery ---
api_router.include_router(public_properties_router)
api_router.include_router(public_blog_router)

# --- Public: leads ---
api_router.include_router(contact_router)
api_router.include_router(quotes_router)

# --- Admin ---
api_router.include_router(properties_router)
api_router.include_router(blog_router)
api_router.include_router(contacts_router)
api_router.include_router(admin_quotes_router)
api_router.include_router(users_router)
