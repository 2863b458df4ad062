"""
Workflow dispatch + 실행 상태 조회.

- 상태 조회는 단발성, 서버 상태 없음 (polling 주기는 클라이언트 책임)
- 실행이 아직 없으면 not_found (dispatch 직후 정상 상태, 에러 아님)
- 원격 정렬 순서를 믿지 않고 created_at 기준으로 다시 정렬
"""

import logging
from typing import Any

from rainar.domain.errors import ErrorCodes, RemoteFailureError
from rainar.domain.schemas import WorkflowRunStatus
from rainar.github.client import GitHubClient

logger = logging.getLogger(__name__)


async def dispatch_workflow(
    client: GitHubClient,
    owner: str,
    repo: str,
    workflow_id: str,
    ref: str,
) -> None:
    """
    workflow 실행 요청.

    Args:
        client: 인증된 GitHub 클라이언트
        owner: 저장소 소유자
        repo: 저장소 이름
        workflow_id: workflow 파일명 또는 ID (예: ci.yml)
        ref: 실행할 branch/tag
    """
    await client.dispatch_workflow(owner, repo, workflow_id, ref)
    logger.info(f"Dispatched workflow '{workflow_id}' on {owner}/{repo}@{ref}")


def select_latest_run(runs: list[dict[str, Any]]) -> dict[str, Any] | None:
    """created_at이 가장 최근인 실행 (ISO 8601 UTC 문자열은 사전순 = 시간순)."""
    if not runs:
        return None
    return max(runs, key=lambda run: (run.get("created_at") or "", run.get("id") or 0))


async def get_latest_run_status(
    client: GitHubClient,
    owner: str,
    repo: str,
    workflow_id: str,
) -> WorkflowRunStatus:
    """
    최신 workflow 실행 상태 조회.

    Returns:
        WorkflowRunStatus (실행 없음 → not_found)
    """
    try:
        runs = await client.list_workflow_runs(owner, repo, workflow_id)
    except RemoteFailureError as e:
        # push 직후에는 workflow 자체가 아직 등록되지 않아 404일 수 있음
        if e.code == ErrorCodes.REMOTE_NOT_FOUND:
            return WorkflowRunStatus.not_found()
        raise

    latest = select_latest_run(runs)
    if latest is None:
        return WorkflowRunStatus.not_found()
    return WorkflowRunStatus.from_run(latest)
