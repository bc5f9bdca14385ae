from fastapi import APIRouter

from shiori.api import imports, library, search

router = APIRouter()

router.include_router(search.router, prefix="/search", tags=["search"])
router.include_router(imports.router, prefix="/imports", tags=["imports"])
router.include_router(library.router, prefix="/library", tags=["library"])
