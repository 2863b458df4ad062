"""
Route 공통 헬퍼: 서비스 조회, access token 추출, 에러 변환.
"""

from fastapi import HTTPException, Request

from rainar.app.service import ProvisioningService
from rainar.domain.errors import PipelineError


def get_service(request: Request) -> ProvisioningService:
    """Request에서 ProvisioningService 가져오기."""
    return request.app.state.service


def get_access_token(request: Request) -> str | None:
    """
    Authorization 헤더의 Bearer 토큰.

    세션/OAuth 처리는 앞단(identity provider)이 담당하고,
    여기서는 그 결과 토큰만 읽음.
    """
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def to_http_exception(error: PipelineError) -> HTTPException:
    """PipelineError → HTTPException (detail: code, message, step)."""
    detail = {"code": error.code, "message": error.message}
    if error.step:
        detail["step"] = error.step
    return HTTPException(status_code=error.http_status, detail=detail)
