"""
저장소 프로비저너: 템플릿 → 초기화된 원격 저장소.

순서 고정 (각 단계 출력이 다음 단계 입력):
1. create_repo    → RemoteRepository
2. render_tree    → RenderedFile 목록 (메모리, 템플릿은 작음)
3. create_blobs   → 경로 → blob sha (병렬, 하나라도 실패하면 중단)
4. create_tree    → tree sha
5. create_commit  → commit sha (parent 없음)
6. update_ref     → 기본 branch가 commit을 가리킴

실패 시 남은 단계 즉시 중단, 실패 단계를 에러 context에 기록.
이미 생성된 원격 저장소는 정리하지 않음 (알려진 제약).
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from rainar.core.logging import complete_provisioning_log, create_provisioning_log, emit_step
from rainar.domain.constants import BLOB_CONCURRENCY, PROJECT_DESCRIPTION_VARIABLE
from rainar.domain.errors import ErrorCodes, PipelineError, RemoteFailureError
from rainar.domain.schemas import (
    ProvisioningLog,
    ProvisioningRequest,
    ProvisioningResult,
    RemoteRepository,
    RenderedFile,
)
from rainar.github.client import GitHubClient
from rainar.render.tree import walk_template
from rainar.render.variables import build_variables, render_bytes
from rainar.templates.catalog import TemplateCatalog

logger = logging.getLogger(__name__)


class ProvisioningStep(str, Enum):
    """저장소 생성 단계."""
    CREATE_REPO = "create_repo"
    RENDER_TREE = "render_tree"
    CREATE_BLOBS = "create_blobs"
    CREATE_TREE = "create_tree"
    CREATE_COMMIT = "create_commit"
    UPDATE_REF = "update_ref"


@dataclass
class StepOutcome:
    """
    단계 실행 결과 (tagged).

    ok=True: value가 다음 단계 입력
    ok=False: error에 분류된 에러, step에 실패 단계
    """
    step: ProvisioningStep
    ok: bool
    value: Any = None
    error: PipelineError | None = None


def render_files(
    template_root: Path,
    variables: dict[str, str],
    exclude: frozenset[tuple[str, ...]] = frozenset(),
) -> list[RenderedFile]:
    """템플릿 전체를 렌더링 (메모리에 보관)."""

    def visit(relative: tuple[str, ...], data: bytes) -> RenderedFile:
        content = render_bytes(data, variables, source="/".join(relative))
        return RenderedFile(relative_path=relative, content=content)

    return walk_template(template_root, visit, exclude)


class RepositoryProvisioner:
    """
    원격 저장소 생성 오케스트레이터.

    Usage:
        async with GitHubClient(token) as client:
            provisioner = RepositoryProvisioner(client, catalog)
            result = await provisioner.provision(request)
    """

    def __init__(
        self,
        client: GitHubClient,
        catalog: TemplateCatalog,
        blob_concurrency: int = BLOB_CONCURRENCY,
        private: bool = True,
    ):
        """
        Args:
            client: 인증된 GitHub 클라이언트
            catalog: 템플릿 카탈로그
            blob_concurrency: 동시 blob 생성 상한
            private: 비공개 저장소 생성 여부
        """
        self.client = client
        self.catalog = catalog
        self.blob_concurrency = max(1, blob_concurrency)
        self.private = private

    async def provision(self, request: ProvisioningRequest) -> ProvisioningResult:
        """
        저장소 생성 프로토콜 실행.

        요청은 호출자가 이미 검증했다고 가정 (이름, 템플릿 존재).

        Returns:
            ProvisioningResult (url, owner, repo)

        Raises:
            PipelineError: 실패한 단계가 context["step"]에 기록됨
        """
        template = self.catalog.get_template(request.template_id)
        template_root = self.catalog.template_path(template.id)
        exclude = frozenset((name,) for name in self.catalog.manifest_filenames)
        variables = build_variables(
            request.project_name,
            request.config,
            defaults={PROJECT_DESCRIPTION_VARIABLE: template.description},
        )
        description = variables[PROJECT_DESCRIPTION_VARIABLE]

        run_log = create_provisioning_log(request.project_name, template.id)

        repo: RemoteRepository = await self._run(
            run_log,
            ProvisioningStep.CREATE_REPO,
            lambda: self.client.create_repository(
                request.project_name,
                private=self.private,
                description=description,
            ),
        )

        files: list[RenderedFile] = await self._run(
            run_log,
            ProvisioningStep.RENDER_TREE,
            lambda: asyncio.to_thread(render_files, template_root, variables, exclude),
        )

        blobs: dict[str, str] = await self._run(
            run_log,
            ProvisioningStep.CREATE_BLOBS,
            lambda: self._create_blobs(repo, files),
        )

        tree_sha: str = await self._run(
            run_log,
            ProvisioningStep.CREATE_TREE,
            lambda: self.client.create_tree(repo.owner, repo.name, blobs),
        )

        commit_sha: str = await self._run(
            run_log,
            ProvisioningStep.CREATE_COMMIT,
            lambda: self.client.create_commit(
                repo.owner,
                repo.name,
                f"Initial commit from template '{template.id}'",
                tree_sha,
                parents=[],
            ),
        )

        await self._run(
            run_log,
            ProvisioningStep.UPDATE_REF,
            lambda: self.client.update_ref(
                repo.owner, repo.name, repo.default_branch, commit_sha
            ),
        )

        complete_provisioning_log(run_log, success=True)
        return ProvisioningResult(
            url=repo.html_url,
            owner=repo.owner,
            repo=repo.name,
            default_branch=repo.default_branch,
            run_id=run_log.run_id,
            steps=[s.step for s in run_log.steps],
        )

    # =========================================================================
    # Steps
    # =========================================================================

    async def _run(
        self,
        run_log: ProvisioningLog,
        step: ProvisioningStep,
        action: Callable[[], Awaitable[Any]],
    ) -> Any:
        """단계 실행 → 성공이면 값 반환, 실패면 단계 정보와 함께 raise."""
        outcome = await self._attempt(step, action)
        if outcome.ok:
            emit_step(run_log, step.value, True, **_describe(outcome.value))
            return outcome.value

        error = outcome.error or RemoteFailureError(
            ErrorCodes.REMOTE_ERROR, "Step failed without an error"
        )
        error.at_step(step.value)
        emit_step(run_log, step.value, False, code=error.code)
        complete_provisioning_log(
            run_log,
            success=False,
            error_code=error.code,
            error_context=error.to_dict(),
        )
        if step != ProvisioningStep.CREATE_REPO:
            logger.error(
                f"[{run_log.run_id}] repository '{run_log.project_name}' left "
                f"partially initialized after {step.value} failed"
            )
        raise error

    @staticmethod
    async def _attempt(
        step: ProvisioningStep,
        action: Callable[[], Awaitable[Any]],
    ) -> StepOutcome:
        try:
            value = await action()
        except PipelineError as e:
            return StepOutcome(step=step, ok=False, error=e)
        except (KeyError, TypeError, ValueError) as e:
            # 예상과 다른 원격 응답 형식
            return StepOutcome(
                step=step,
                ok=False,
                error=RemoteFailureError(
                    ErrorCodes.REMOTE_ERROR,
                    f"Unexpected response from GitHub: {e!r}",
                ),
            )
        return StepOutcome(step=step, ok=True, value=value)

    async def _create_blobs(
        self,
        repo: RemoteRepository,
        files: list[RenderedFile],
    ) -> dict[str, str]:
        """
        파일별 blob 병렬 생성 (fan-out/join).

        하나라도 실패하면 나머지는 취소되고 첫 에러를 raise.
        """
        semaphore = asyncio.Semaphore(self.blob_concurrency)

        async def create(file: RenderedFile) -> tuple[str, str]:
            async with semaphore:
                sha = await self.client.create_blob(repo.owner, repo.name, file.as_bytes())
                return file.path, sha

        try:
            async with asyncio.TaskGroup() as tg:
                tasks = [tg.create_task(create(f)) for f in files]
        except BaseExceptionGroup as group:
            raise _first_error(group) from None

        return dict(task.result() for task in tasks)


def _first_error(group: BaseExceptionGroup) -> BaseException:
    """exception group에서 첫 번째 실제 에러 (중첩 group 포함)."""
    for exc in group.exceptions:
        if isinstance(exc, BaseExceptionGroup):
            return _first_error(exc)
        if not isinstance(exc, asyncio.CancelledError):
            return exc
    return group.exceptions[0]


def _describe(value: Any) -> dict[str, Any]:
    """단계 결과 요약 (로그용, 내용 없이)."""
    if isinstance(value, RemoteRepository):
        return {"owner": value.owner, "repo": value.name}
    if isinstance(value, list):
        return {"files": len(value)}
    if isinstance(value, dict):
        return {"blobs": len(value)}
    if isinstance(value, str):
        return {"sha": value}
    return {}
