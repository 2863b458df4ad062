"""
Provisioning service: transport 계층에 노출되는 연산.

- list_templates
- create_archive          → 스트리밍 ZIP
- create_repository       → {url, owner, repo}
- set_repository_secrets
- dispatch_workflow
- get_workflow_status

공통 규칙: 이름 검증은 파일 시스템/원격 호출 전에 수행.
"""

import logging
import os
import re
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rainar.core.names import validate_repository_name, validate_segment
from rainar.domain.constants import (
    ARCHIVE_COMPRESSLEVEL,
    ARCHIVE_MEDIA_TYPE,
    BLOB_CONCURRENCY,
    DEFAULT_BRANCH,
    GITHUB_API_URL,
    MANIFEST_FILENAMES,
    PROJECT_DESCRIPTION_VARIABLE,
)
from rainar.domain.errors import ErrorCodes, UnauthorizedError, ValidationError
from rainar.domain.schemas import (
    ProvisioningRequest,
    ProvisioningResult,
    SecretSubmission,
    Template,
    WorkflowRunStatus,
)
from rainar.github import secrets as secret_sealer
from rainar.github import workflows
from rainar.github.client import GitHubClient
from rainar.github.provisioner import RepositoryProvisioner
from rainar.render.archive import archive_filename, iter_archive
from rainar.render.variables import build_variables
from rainar.templates.catalog import TemplateCatalog

logger = logging.getLogger(__name__)

# GitHub Actions secret 이름 규칙
SECRET_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

ClientFactory = Callable[[str | None], GitHubClient]


@dataclass
class ArchiveStream:
    """다운로드 응답 구성 요소."""
    filename: str
    media_type: str
    chunks: Iterator[bytes]


def parse_secrets(raw: Any) -> list[SecretSubmission]:
    """
    요청 본문의 secrets → SecretSubmission 목록.

    허용 형식: [{"name": ..., "value": ...}, ...]

    Raises:
        ValidationError: INVALID_SECRETS
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError(ErrorCodes.INVALID_SECRETS, "secrets must be a list")

    result = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            raise ValidationError(ErrorCodes.INVALID_SECRETS, "each secret must be an object")
        name = entry.get("name")
        value = entry.get("value")
        if not isinstance(name, str) or not SECRET_NAME_PATTERN.match(name):
            raise ValidationError(
                ErrorCodes.INVALID_SECRETS,
                "secret name must be alphanumeric or '_' and not start with a digit",
                secret=str(name),
            )
        if name.upper().startswith("GITHUB_"):
            raise ValidationError(
                ErrorCodes.INVALID_SECRETS,
                "secret names must not start with GITHUB_",
                secret=name,
            )
        if not isinstance(value, str):
            raise ValidationError(
                ErrorCodes.INVALID_SECRETS,
                "secret value must be a string",
                secret=name,
            )
        result.append(SecretSubmission(name=name, value=value))
    return result


class ProvisioningService:
    """
    템플릿 → 프로젝트 파이프라인 진입점.

    Usage:
        service = ProvisioningService(TemplateCatalog(root))
        stream = service.create_archive("demo", "basic-api", {})
    """

    def __init__(
        self,
        catalog: TemplateCatalog,
        client_factory: ClientFactory | None = None,
        compresslevel: int = ARCHIVE_COMPRESSLEVEL,
        blob_concurrency: int = BLOB_CONCURRENCY,
        private: bool = True,
    ):
        """
        Args:
            catalog: 템플릿 카탈로그
            client_factory: access token → GitHubClient (테스트 주입용)
            compresslevel: ZIP 압축 레벨
            blob_concurrency: 동시 blob 생성 상한
            private: 비공개 저장소 생성 여부
        """
        self.catalog = catalog
        self.client_factory: ClientFactory = client_factory or GitHubClient
        self.compresslevel = compresslevel
        self.blob_concurrency = blob_concurrency
        self.private = private

    # =========================================================================
    # Templates
    # =========================================================================

    def list_templates(self) -> list[Template]:
        return self.catalog.list_templates()

    def get_template(self, template_id: str) -> Template:
        return self.catalog.get_template(template_id)

    # =========================================================================
    # Archive
    # =========================================================================

    def create_archive(
        self,
        name: str,
        template_id: str,
        config: Mapping[str, str] | None = None,
    ) -> ArchiveStream:
        """
        템플릿을 렌더링한 ZIP 스트림 준비.

        검증/템플릿 조회는 여기서 즉시 수행 (응답 헤더 전송 전),
        렌더링은 chunks를 소비할 때 진행.

        Raises:
            ValidationError, NotFoundError
        """
        validate_segment(name, "name")
        validate_segment(template_id, "template")
        build_variables(name, config)

        template = self.catalog.get_template(template_id)
        variables = build_variables(
            name,
            config,
            defaults={PROJECT_DESCRIPTION_VARIABLE: template.description},
        )
        template_root = self.catalog.template_path(template.id)
        exclude = frozenset((f,) for f in self.catalog.manifest_filenames)

        logger.info(f"Creating archive '{name}' from template '{template_id}'")
        return ArchiveStream(
            filename=archive_filename(name),
            media_type=ARCHIVE_MEDIA_TYPE,
            chunks=iter_archive(
                template_root,
                variables,
                exclude=exclude,
                compresslevel=self.compresslevel,
            ),
        )

    # =========================================================================
    # Repository
    # =========================================================================

    async def create_repository(
        self,
        name: str,
        template_id: str,
        config: Mapping[str, str] | None,
        access_token: str | None,
    ) -> ProvisioningResult:
        """
        템플릿으로 초기화된 원격 저장소 생성.

        Raises:
            ValidationError, UnauthorizedError, NotFoundError,
            RemoteConflictError, RemoteFailureError, IntegrityFailureError
        """
        validate_segment(name, "name")
        validate_segment(template_id, "template")
        validate_repository_name(name)
        build_variables(name, config)
        self._require_token(access_token)

        self.catalog.get_template(template_id)

        request = ProvisioningRequest(
            project_name=name,
            template_id=template_id,
            config=dict(config or {}),
        )

        async with self.client_factory(access_token) as client:
            provisioner = RepositoryProvisioner(
                client,
                self.catalog,
                blob_concurrency=self.blob_concurrency,
                private=self.private,
            )
            result = await provisioner.provision(request)

        logger.info(f"Created repository {result.owner}/{result.repo} from '{template_id}'")
        return result

    async def set_repository_secrets(
        self,
        owner: str,
        repo: str,
        access_token: str | None,
        secrets: Sequence[SecretSubmission],
    ) -> list[str]:
        """저장소에 Actions secret 설정 (빈 목록이면 no-op)."""
        self._validate_repository(owner, repo)
        self._require_token(access_token)
        if not secrets:
            return []

        async with self.client_factory(access_token) as client:
            return await secret_sealer.set_repository_secrets(client, owner, repo, secrets)

    async def dispatch_workflow(
        self,
        owner: str,
        repo: str,
        access_token: str | None,
        workflow_id: str,
        ref: str | None = None,
    ) -> None:
        """workflow 실행 요청 (ref 기본값: main)."""
        self._validate_repository(owner, repo)
        validate_segment(workflow_id, "workflow_id")
        self._require_token(access_token)

        async with self.client_factory(access_token) as client:
            await workflows.dispatch_workflow(
                client, owner, repo, workflow_id, ref or DEFAULT_BRANCH
            )

    async def get_workflow_status(
        self,
        owner: str,
        repo: str,
        access_token: str | None,
        workflow_id: str,
    ) -> WorkflowRunStatus:
        """최신 workflow 실행 상태 (실행 없음 → not_found)."""
        self._validate_repository(owner, repo)
        validate_segment(workflow_id, "workflow_id")
        self._require_token(access_token)

        async with self.client_factory(access_token) as client:
            return await workflows.get_latest_run_status(client, owner, repo, workflow_id)

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    @staticmethod
    def _validate_repository(owner: str, repo: str) -> None:
        validate_segment(owner, "owner")
        validate_segment(repo, "repo")

    @staticmethod
    def _require_token(access_token: str | None) -> None:
        if not access_token:
            raise UnauthorizedError(
                ErrorCodes.UNAUTHORIZED,
                "GitHub access token is missing. Please log in again.",
            )


# =============================================================================
# Factory
# =============================================================================


def build_service(config: dict[str, Any], base_dir: Path) -> ProvisioningService:
    """
    default.yaml 설정 → ProvisioningService.

    환경변수 우선: RAINAR_TEMPLATES_ROOT, RAINAR_GITHUB_API_URL

    Args:
        config: load_config() 결과
        base_dir: 상대 경로 기준 디렉터리 (프로젝트 루트)
    """
    paths = config.get("paths", {}) or {}
    templates_cfg = config.get("templates", {}) or {}
    archive_cfg = config.get("archive", {}) or {}
    github_cfg = config.get("github", {}) or {}

    templates_root = Path(
        os.environ.get("RAINAR_TEMPLATES_ROOT") or paths.get("templates_root", "templates")
    )
    if not templates_root.is_absolute():
        templates_root = base_dir / templates_root

    manifest_filenames = tuple(templates_cfg.get("manifest_filenames") or MANIFEST_FILENAMES)

    api_url = os.environ.get("RAINAR_GITHUB_API_URL") or github_cfg.get("api_url", GITHUB_API_URL)
    timeout = float(github_cfg.get("timeout", 30.0))
    max_retries = int(github_cfg.get("max_retries", 2))

    def client_factory(access_token: str | None) -> GitHubClient:
        return GitHubClient(
            access_token,
            api_url=api_url,
            timeout=timeout,
            max_retries=max_retries,
        )

    return ProvisioningService(
        TemplateCatalog(templates_root, manifest_filenames),
        client_factory=client_factory,
        compresslevel=int(archive_cfg.get("compresslevel", ARCHIVE_COMPRESSLEVEL)),
        blob_concurrency=int(github_cfg.get("blob_concurrency", BLOB_CONCURRENCY)),
        private=bool(github_cfg.get("private", True)),
    )
