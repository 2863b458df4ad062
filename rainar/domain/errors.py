"""
Error definitions for the provisioning pipeline.

분류:
- ValidationError: 클라이언트 입력 오류 (I/O 전에 감지, 재시도 불가)
- NotFoundError: 알 수 없는 템플릿
- UnauthorizedError: access token 없음/만료
- RemoteConflictError: 원격 저장소 이름 충돌
- RemoteFailureError: 그 외 원격 호출 실패 (네트워크, quota, 5xx)
- IntegrityFailureError: 렌더/아카이브 도중 실패

조용한 실패 금지 → 항상 명시적 예외.
"""

from typing import Any


class PipelineError(Exception):
    """
    파이프라인 에러 기본 클래스.

    Usage:
        raise ValidationError("INVALID_NAME", "Project name is required", field="name")
    """

    http_status = 500

    def __init__(self, code: str, message: str, **context: Any) -> None:
        self.code = code
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        base = f"[{self.code}] {self.message}"
        return f"{base} ({ctx_str})" if ctx_str else base

    @property
    def step(self) -> str | None:
        """실패한 provisioning 단계 (있는 경우)."""
        return self.context.get("step")

    def at_step(self, step: str) -> "PipelineError":
        """실패 단계를 context에 기록하고 자신을 반환."""
        self.context["step"] = step
        self.args = (self._format_message(),)
        return self

    def to_dict(self) -> dict[str, Any]:
        """로그/JSON 직렬화용."""
        return {
            "code": self.code,
            "message": self.message,
            **self.context,
        }


class ValidationError(PipelineError):
    """잘못된 이름, 템플릿, 요청 형식."""

    http_status = 400


class NotFoundError(PipelineError):
    """알 수 없는 template id."""

    http_status = 404


class UnauthorizedError(PipelineError):
    """원격 자격 증명 없음 또는 만료."""

    http_status = 401


class RemoteConflictError(PipelineError):
    """원격 호스트에서 이름 충돌."""

    http_status = 409


class RemoteFailureError(PipelineError):
    """분류되지 않은 원격 호출 실패."""

    http_status = 502


class RemoteUnavailableError(RemoteFailureError):
    """연결 실패, 타임아웃, 5xx (멱등 조회만 재시도 대상)."""


class IntegrityFailureError(PipelineError):
    """렌더/아카이브 도중 실패."""

    http_status = 500


class UnresolvedPlaceholderError(IntegrityFailureError):
    """config에 없는 placeholder 참조."""


class CatalogUnavailableError(PipelineError):
    """templates 루트 자체를 읽을 수 없음 (시작 시 치명적)."""

    http_status = 503


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCodes:
    """에러 코드 상수."""

    # === Validation ===
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_NAME = "INVALID_NAME"
    PATH_TRAVERSAL = "PATH_TRAVERSAL"
    INVALID_CONFIG = "INVALID_CONFIG"
    INVALID_SECRETS = "INVALID_SECRETS"

    # === Catalog ===
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    TEMPLATES_ROOT_UNREADABLE = "TEMPLATES_ROOT_UNREADABLE"
    MANIFEST_MISSING = "MANIFEST_MISSING"  # warning, not raised
    MANIFEST_INVALID = "MANIFEST_INVALID"  # warning, not raised

    # === Render / Archive ===
    UNRESOLVED_PLACEHOLDER = "UNRESOLVED_PLACEHOLDER"
    TEMPLATE_READ_FAILED = "TEMPLATE_READ_FAILED"
    ARCHIVE_FAILED = "ARCHIVE_FAILED"

    # === Remote ===
    UNAUTHORIZED = "UNAUTHORIZED"
    REPOSITORY_EXISTS = "REPOSITORY_EXISTS"
    REMOTE_CONFLICT = "REMOTE_CONFLICT"
    REMOTE_NOT_FOUND = "REMOTE_NOT_FOUND"
    REMOTE_ERROR = "REMOTE_ERROR"
    REMOTE_UNREACHABLE = "REMOTE_UNREACHABLE"
    SECRET_SEAL_FAILED = "SECRET_SEAL_FAILED"
