"""
FastAPI Routes.

API 라우트 (REST + ZIP 스트리밍)
"""

from . import projects, repositories, templates

__all__ = ["projects", "repositories", "templates"]
