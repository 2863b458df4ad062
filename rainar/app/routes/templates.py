"""
Templates Routes: 템플릿 목록/상세.

- GET /api/templates → 템플릿 목록 (secrets, workflow_id 포함)
- GET /api/templates/{template_id} → 템플릿 상세
"""

from typing import Any

from fastapi import APIRouter, Request

from rainar.app.deps import get_service, to_http_exception
from rainar.domain.errors import PipelineError

api_router = APIRouter()


@api_router.get("")
async def list_templates(request: Request) -> list[dict[str, Any]]:
    """템플릿 목록."""
    service = get_service(request)
    try:
        templates = service.list_templates()
    except PipelineError as e:
        raise to_http_exception(e) from e
    return [t.to_dict() for t in templates]


@api_router.get("/{template_id}")
async def get_template(request: Request, template_id: str) -> dict[str, Any]:
    """템플릿 상세 조회."""
    service = get_service(request)
    try:
        template = service.get_template(template_id)
    except PipelineError as e:
        raise to_http_exception(e) from e
    return template.to_dict()
