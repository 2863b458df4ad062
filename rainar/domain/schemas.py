"""
Data schemas for the provisioning pipeline.

규칙:
- Template은 로드 후 불변 (frozen)
- 평문 secret 값은 repr/로그에 노출 금지
- WorkflowRunStatus는 원격 상태의 읽기 전용 투영 (저장하지 않음)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# =============================================================================
# Template
# =============================================================================

@dataclass(frozen=True)
class SecretSpec:
    """템플릿이 요구하는 secret 선언."""
    name: str
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description}


@dataclass(frozen=True)
class Template:
    """
    템플릿 메타데이터 (manifest).

    id는 catalog key이자 디렉터리 이름과 동일.
    """
    id: str
    name: str
    description: str = ""
    secrets: tuple[SecretSpec, ...] = ()
    workflow_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "secrets": [s.to_dict() for s in self.secrets],
            "workflow_id": self.workflow_id,
        }


# =============================================================================
# Request / Render
# =============================================================================

@dataclass(frozen=True)
class ProvisioningRequest:
    """
    클라이언트 호출 1회분 요청.

    project_name은 표시 이름이자 원격 저장소 이름.
    """
    project_name: str
    template_id: str
    config: dict[str, str] = field(default_factory=dict)


@dataclass
class RenderedFile:
    """렌더링된 파일 1개. 소비하는 sink(archive, blob 목록)가 단독 소유."""
    relative_path: tuple[str, ...]
    content: str | bytes

    @property
    def path(self) -> str:
        """'/' 구분 경로 (archive arcname, git tree path)."""
        return "/".join(self.relative_path)

    def as_bytes(self) -> bytes:
        if isinstance(self.content, bytes):
            return self.content
        return self.content.encode("utf-8")


# =============================================================================
# Remote
# =============================================================================

@dataclass(frozen=True)
class RemoteRepository:
    """원격 저장소 (생성 후 이 파이프라인에서 갱신하지 않음)."""
    owner: str
    name: str
    default_branch: str
    html_url: str


@dataclass(frozen=True)
class SecretSubmission:
    """제출할 secret (평문). 저장/로그 금지."""
    name: str
    value: str = field(repr=False)


@dataclass(frozen=True)
class SealedSecret:
    """저장소 public key로 sealing된 secret."""
    name: str
    encrypted_value: str  # base64
    key_id: str


@dataclass
class ProvisioningResult:
    """저장소 생성 성공 결과."""
    url: str
    owner: str
    repo: str
    default_branch: str
    run_id: str | None = None
    steps: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "owner": self.owner,
            "repo": self.repo,
        }


# =============================================================================
# Workflow Run
# =============================================================================

class RunStatus(str, Enum):
    """워크플로 실행 상태."""
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    NOT_FOUND = "not_found"  # 아직 실행이 없음 (dispatch 직후 정상 상태)


# 원격 호스트의 대기 계열 상태 → queued
_QUEUED_ALIASES = {"queued", "waiting", "requested", "pending"}


@dataclass(frozen=True)
class WorkflowRunStatus:
    """최신 실행의 상태 관측값. 매 poll마다 새로 조회."""
    status: RunStatus
    conclusion: str | None = None
    run_id: int | None = None
    html_url: str | None = None

    @classmethod
    def not_found(cls) -> "WorkflowRunStatus":
        return cls(status=RunStatus.NOT_FOUND)

    @classmethod
    def from_run(cls, run: dict[str, Any]) -> "WorkflowRunStatus":
        raw_status = run.get("status") or "queued"
        if raw_status in _QUEUED_ALIASES:
            status = RunStatus.QUEUED
        else:
            try:
                status = RunStatus(raw_status)
            except ValueError:
                status = RunStatus.IN_PROGRESS
        conclusion = run.get("conclusion") if status == RunStatus.COMPLETED else None
        return cls(
            status=status,
            conclusion=conclusion,
            run_id=run.get("id"),
            html_url=run.get("html_url"),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"status": self.status.value}
        if self.conclusion is not None:
            result["conclusion"] = self.conclusion
        if self.run_id is not None:
            result["run_id"] = self.run_id
        if self.html_url is not None:
            result["html_url"] = self.html_url
        return result


# =============================================================================
# Run Log Schemas
# =============================================================================

@dataclass
class WarningLog:
    """
    경고 로그.

    필수 컨텍스트: level, code, subject, message
    """
    level: str = "warning"
    code: str = ""
    subject: str = ""  # template id, 파일 경로 등
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "subject": self.subject,
            "message": self.message,
        }


@dataclass
class StepLog:
    """provisioning 단계 1개의 결과."""
    step: str
    ok: bool
    at: str  # ISO 8601
    detail: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.step,
            "ok": self.ok,
            "at": self.at,
            "detail": self.detail,
        }


@dataclass
class ProvisioningLog:
    """
    저장소 생성 실행 로그.

    run 단위 단계 이벤트 및 결과.
    """
    run_id: str
    project_name: str
    template_id: str
    started_at: str  # ISO 8601
    finished_at: str | None = None
    result: str = "pending"  # pending, success, failed

    steps: list[StepLog] = field(default_factory=list)
    warnings: list[WarningLog] = field(default_factory=list)

    # Error (if failed)
    error_code: str | None = None
    error_context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "project_name": self.project_name,
            "template_id": self.template_id,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "result": self.result,
            "steps": [s.to_dict() for s in self.steps],
            "warnings": [w.to_dict() for w in self.warnings],
            "error_code": self.error_code,
            "error_context": self.error_context,
        }
