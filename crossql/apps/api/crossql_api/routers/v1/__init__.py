from typing import List

from fastapi import APIRouter

from .unified_sql import router as unified_sql_router

v1_routes: List[APIRouter] = [
    unified_sql_router,
]

__all__ = [
    "unified_sql_router",
    "v1_routes",
]
