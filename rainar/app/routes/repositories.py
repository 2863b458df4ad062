"""
Repositories Routes: GitHub 저장소 생성 + CI 연동.

- POST /api/repositories → 템플릿으로 초기화된 저장소 생성
- POST /api/repositories/{owner}/{repo}/secrets → Actions secret 설정
- POST /api/repositories/{owner}/{repo}/dispatch → workflow 실행
- GET  /api/repositories/{owner}/{repo}/workflows/{workflow_id}/status → 최신 실행 상태

인증: Authorization: Bearer <token>
"""

from typing import Any

from fastapi import APIRouter, Body, Request

from rainar.app.deps import get_access_token, get_service, to_http_exception
from rainar.app.service import parse_secrets
from rainar.domain.errors import PipelineError

api_router = APIRouter()


@api_router.post("", status_code=201)
async def create_repository(
    request: Request,
    name: str | None = Body(None),
    template: str | None = Body(None),
    config: dict[str, Any] | None = Body(None),
) -> dict[str, Any]:
    """
    저장소 생성.

    Returns:
        {url, owner, repo}
    """
    service = get_service(request)
    try:
        result = await service.create_repository(
            name, template, config, get_access_token(request)
        )
    except PipelineError as e:
        raise to_http_exception(e) from e
    return result.to_dict()


@api_router.post("/{owner}/{repo}/secrets")
async def set_secrets(
    request: Request,
    owner: str,
    repo: str,
    secrets: Any = Body(None, embed=True),
) -> dict[str, Any]:
    """Actions secret 설정 (값은 응답/로그에 포함하지 않음)."""
    service = get_service(request)
    try:
        submitted = await service.set_repository_secrets(
            owner, repo, get_access_token(request), parse_secrets(secrets)
        )
    except PipelineError as e:
        raise to_http_exception(e) from e
    return {"success": True, "submitted": submitted}


@api_router.post("/{owner}/{repo}/dispatch", status_code=202)
async def dispatch_workflow(
    request: Request,
    owner: str,
    repo: str,
    workflow_id: str | None = Body(None),
    ref: str | None = Body(None),
) -> dict[str, Any]:
    """workflow 실행 요청."""
    service = get_service(request)
    try:
        await service.dispatch_workflow(
            owner, repo, get_access_token(request), workflow_id, ref
        )
    except PipelineError as e:
        raise to_http_exception(e) from e
    return {"success": True, "workflow_id": workflow_id}


@api_router.get("/{owner}/{repo}/workflows/{workflow_id}/status")
async def workflow_status(
    request: Request,
    owner: str,
    repo: str,
    workflow_id: str,
) -> dict[str, Any]:
    """
    최신 workflow 실행 상태.

    실행이 아직 없으면 {"status": "not_found"} (200).
    polling 주기는 클라이언트가 결정.
    """
    service = get_service(request)
    try:
        status = await service.get_workflow_status(
            owner, repo, get_access_token(request), workflow_id
        )
    except PipelineError as e:
        raise to_http_exception(e) from e
    return status.to_dict()
