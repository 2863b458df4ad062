"""
Projects Routes: 프로젝트 ZIP 다운로드.

- POST /api/projects/archive → 렌더링된 템플릿 ZIP 스트리밍

헤더 전송 후 렌더 실패는 에러 응답으로 바꿀 수 없음
→ 스트림을 중단하고 연결을 비정상 종료 (완결된 것처럼 보이는 ZIP 금지).
"""

from typing import Any

from fastapi import APIRouter, Body, Request
from fastapi.responses import StreamingResponse

from rainar.app.deps import get_service, to_http_exception
from rainar.domain.errors import PipelineError
from rainar.render.archive import content_disposition

api_router = APIRouter()


@api_router.post("/archive")
async def download_archive(
    request: Request,
    name: str | None = Body(None),
    template: str | None = Body(None),
    config: dict[str, Any] | None = Body(None),
) -> StreamingResponse:
    """
    프로젝트 ZIP 다운로드.

    Body:
        name: 프로젝트 이름 (파일명 <name>.zip)
        template: 템플릿 ID
        config: 추가 변수 (projectDescription 등)
    """
    service = get_service(request)
    try:
        stream = service.create_archive(name, template, config)
    except PipelineError as e:
        raise to_http_exception(e) from e

    return StreamingResponse(
        stream.chunks,
        media_type=stream.media_type,
        headers={"Content-Disposition": content_disposition(stream.filename)},
    )
