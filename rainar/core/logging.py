"""
Run logging: provisioning run log, step events, warnings

규칙:
- 단계 이벤트 필수 컨텍스트: step, ok, at
- 평문 secret 값은 detail에 절대 넣지 않음
- 파일 저장 없음 (프로젝트 목록 영속화는 범위 밖) → logger로 출력
"""

import logging
from datetime import UTC, datetime
from typing import Any

from rainar.core.ids import generate_run_id
from rainar.domain.schemas import ProvisioningLog, StepLog, WarningLog

logger = logging.getLogger(__name__)


def create_provisioning_log(project_name: str, template_id: str) -> ProvisioningLog:
    """
    새 ProvisioningLog 생성.

    Args:
        project_name: 프로젝트(저장소) 이름
        template_id: 템플릿 ID

    Returns:
        초기화된 ProvisioningLog
    """
    return ProvisioningLog(
        run_id=generate_run_id(),
        project_name=project_name,
        template_id=template_id,
        started_at=datetime.now(UTC).isoformat(),
    )


def emit_step(
    run_log: ProvisioningLog,
    step: str,
    ok: bool,
    **detail: Any,
) -> None:
    """
    단계 이벤트 기록.

    Args:
        run_log: ProvisioningLog 인스턴스
        step: 단계 이름 (create_repo, create_blobs 등)
        ok: 성공 여부
        **detail: 추가 정보 (sha, 파일 수 등)
    """
    run_log.steps.append(
        StepLog(
            step=step,
            ok=ok,
            at=datetime.now(UTC).isoformat(),
            detail=detail,
        )
    )
    level = logging.INFO if ok else logging.ERROR
    logger.log(
        level,
        f"[{run_log.run_id}] step={step} ok={ok} {detail}",
    )


def emit_warning(
    warnings: list[WarningLog],
    code: str,
    subject: str,
    message: str,
) -> WarningLog:
    """
    경고 이벤트 기록.

    Args:
        warnings: 경고를 누적할 목록 (run log 또는 catalog)
        code: 경고 코드
        subject: 대상 (template id, 파일 경로 등)
        message: 경고 메시지

    Returns:
        기록된 WarningLog
    """
    warning = WarningLog(code=code, subject=subject, message=message)
    warnings.append(warning)
    logger.warning(f"[{code}] {subject}: {message}")
    return warning


def complete_provisioning_log(
    run_log: ProvisioningLog,
    success: bool,
    error_code: str | None = None,
    error_context: dict[str, Any] | None = None,
) -> None:
    """
    ProvisioningLog 완료 처리.

    Args:
        run_log: ProvisioningLog 인스턴스
        success: 성공 여부
        error_code: 에러 코드 (실패 시)
        error_context: 에러 컨텍스트 (실패 시)
    """
    run_log.finished_at = datetime.now(UTC).isoformat()
    run_log.result = "success" if success else "failed"

    if not success:
        run_log.error_code = error_code
        run_log.error_context = error_context

    logger.info(
        f"[{run_log.run_id}] provisioning {run_log.result}: "
        f"project={run_log.project_name} template={run_log.template_id} "
        f"steps={len(run_log.steps)}"
    )
