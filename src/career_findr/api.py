from fastapi import APIRouter

from career_findr.modules.admissions.router import router as admissions_router
from career_findr.modules.applications.router import router as applications_router
from career_findr.modules.catalog.router import router as catalog_router
from career_findr.modules.search.router import router as search_router
from career_findr.modules.users.admin_router import router as admin_users_router

api_router = APIRouter()

api_router.include_router(catalog_router, tags=["Catalog"])

api_router.include_router(applications_router, prefix="/applications", tags=["Applications"])

api_router.include_router(admissions_router, prefix="/admissions", tags=["Admissions"])

api_router.include_router(search_router, tags=["Search"])

api_router.include_router(admin_users_router, prefix="/admin", tags=["Admin - Users"])
