"""
템플릿 카탈로그: 탐색 + manifest 검증 + 프로세스 수명 캐시.

핵심 규칙:
- template_id = 디렉터리 이름 (catalog key)
- manifest 누락/손상 디렉터리는 경고 후 건너뜀 (치명적 아님)
- templates 루트 자체를 읽을 수 없으면 치명적 (시작 실패)
- 캐시는 한 번만 채움, 무효화 없음 (프로세스 재시작 시에만 초기화)
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from rainar.core.logging import emit_warning
from rainar.core.names import validate_segment
from rainar.domain.constants import MANIFEST_FILENAMES
from rainar.domain.errors import (
    CatalogUnavailableError,
    ErrorCodes,
    NotFoundError,
)
from rainar.domain.schemas import SecretSpec, Template, WarningLog

logger = logging.getLogger(__name__)


class ManifestError(Exception):
    """manifest 형식 오류 (카탈로그 내부에서만 사용, 호출자에 노출 안 됨)."""


# =============================================================================
# Manifest Parsing
# =============================================================================

def parse_manifest(data: Any, template_id: str) -> Template:
    """
    manifest 내용 → Template.

    규칙:
    - mapping이어야 함
    - name: 비어 있지 않은 문자열
    - id: 있으면 디렉터리 이름과 같아야 함
    - secrets: [{name, description?}] 목록
    - workflow_id (또는 workflowId): 선택

    Args:
        data: YAML/JSON 로드 결과
        template_id: 디렉터리 이름

    Returns:
        Template

    Raises:
        ManifestError: 형식 오류
    """
    if not isinstance(data, dict):
        raise ManifestError("manifest must be a mapping")

    declared_id = data.get("id")
    if declared_id is not None and declared_id != template_id:
        raise ManifestError(
            f"manifest id {declared_id!r} does not match directory {template_id!r}"
        )

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ManifestError("manifest 'name' must be a non-empty string")

    description = data.get("description", "")
    if description is None:
        description = ""
    if not isinstance(description, str):
        raise ManifestError("manifest 'description' must be a string")

    raw_secrets = data.get("secrets") or []
    if not isinstance(raw_secrets, list):
        raise ManifestError("manifest 'secrets' must be a list")

    secrets = []
    for entry in raw_secrets:
        if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
            raise ManifestError("each secret must be a mapping with a string 'name'")
        secrets.append(
            SecretSpec(
                name=entry["name"],
                description=str(entry.get("description") or ""),
            )
        )

    workflow_id = data.get("workflow_id", data.get("workflowId"))
    if workflow_id is not None:
        if not isinstance(workflow_id, (str, int)) or isinstance(workflow_id, bool):
            raise ManifestError("manifest 'workflow_id' must be a string")
        workflow_id = str(workflow_id)

    return Template(
        id=template_id,
        name=name,
        description=description,
        secrets=tuple(secrets),
        workflow_id=workflow_id,
    )


# =============================================================================
# Cache
# =============================================================================

class TemplateCache:
    """
    프로세스 수명 템플릿 캐시 (한 번만 채움).

    동시에 두 요청이 채우려 하면 둘 다 같은 결과를 계산할 수 있음
    (멱등 중복 작업, 정합성 문제 아님). 항목은 불변이므로 락 불필요.
    """

    def __init__(self) -> None:
        self._templates: dict[str, Template] | None = None
        self.fill_count = 0

    @property
    def filled(self) -> bool:
        return self._templates is not None

    def get_or_fill(
        self,
        loader: Callable[[], dict[str, Template]],
    ) -> dict[str, Template]:
        """
        캐시 조회, 비어 있으면 loader로 채움.

        loader가 예외를 던지면 캐시는 비어 있는 상태로 유지.
        """
        templates = self._templates
        if templates is None:
            templates = loader()
            self.fill_count += 1
            self._templates = templates
        return templates


# =============================================================================
# Template Catalog
# =============================================================================

class TemplateCatalog:
    """
    템플릿 카탈로그.

    구조:
    templates/<template_id>/
    ├── rainar-template.yaml   # manifest (.json도 허용)
    └── ...                    # 프로젝트 파일
    """

    def __init__(
        self,
        templates_root: Path,
        manifest_filenames: tuple[str, ...] = MANIFEST_FILENAMES,
        cache: TemplateCache | None = None,
    ):
        """
        Args:
            templates_root: templates/ 루트 경로
            manifest_filenames: manifest 파일명 (앞쪽 우선)
            cache: 캐시 객체 (테스트 주입용)
        """
        self.templates_root = templates_root
        self.manifest_filenames = tuple(manifest_filenames)
        self.cache = cache or TemplateCache()
        self.warnings: list[WarningLog] = []

    # =========================================================================
    # Read
    # =========================================================================

    def list_templates(self) -> list[Template]:
        """
        템플릿 목록 조회 (최초 호출 시에만 파일 시스템 읽기).

        Returns:
            Template 목록 (id 순)

        Raises:
            CatalogUnavailableError: templates 루트를 읽을 수 없음
        """
        return list(self.cache.get_or_fill(self._scan).values())

    def get_template(self, template_id: str) -> Template:
        """
        템플릿 조회.

        Raises:
            ValidationError: 잘못된 template id
            NotFoundError: TEMPLATE_NOT_FOUND
        """
        validate_segment(template_id, "template")
        templates = self.cache.get_or_fill(self._scan)
        template = templates.get(template_id)
        if template is None:
            raise NotFoundError(
                ErrorCodes.TEMPLATE_NOT_FOUND,
                f"Template '{template_id}' not found",
                template_id=template_id,
            )
        return template

    def template_path(self, template_id: str) -> Path:
        """카탈로그에 등록된 템플릿의 디렉터리 경로."""
        template = self.get_template(template_id)
        return self.templates_root / template.id

    def is_manifest(self, relative_parts: tuple[str, ...]) -> bool:
        """템플릿 루트의 manifest 파일인지 (프로젝트 출력에서 제외)."""
        return len(relative_parts) == 1 and relative_parts[0] in self.manifest_filenames

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    def _scan(self) -> dict[str, Template]:
        """templates 루트 스캔 (캐시 loader)."""
        try:
            entries = sorted(self.templates_root.iterdir(), key=lambda p: p.name)
        except OSError as e:
            logger.error(f"Failed to load templates from {self.templates_root}: {e}")
            raise CatalogUnavailableError(
                ErrorCodes.TEMPLATES_ROOT_UNREADABLE,
                "Templates root is not readable",
                path=str(self.templates_root),
                error=str(e),
            ) from e

        templates: dict[str, Template] = {}
        for entry in entries:
            if entry.name.startswith("."):
                continue
            # symlink된 템플릿 디렉터리는 루트 밖을 가리킬 수 있음
            if entry.is_symlink() or not entry.is_dir():
                continue

            template = self._load(entry)
            if template is not None:
                templates[template.id] = template

        logger.info(f"Loaded {len(templates)} template(s) from {self.templates_root}")
        return templates

    def _load(self, template_dir: Path) -> Template | None:
        """디렉터리 1개 로드. 실패 시 경고 후 None."""
        manifest_path = self._find_manifest(template_dir)
        if manifest_path is None:
            emit_warning(
                self.warnings,
                ErrorCodes.MANIFEST_MISSING,
                template_dir.name,
                "manifest not found, template skipped",
            )
            return None

        try:
            with open(manifest_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
            return parse_manifest(data, template_dir.name)
        except (OSError, UnicodeDecodeError, yaml.YAMLError, ManifestError) as e:
            emit_warning(
                self.warnings,
                ErrorCodes.MANIFEST_INVALID,
                template_dir.name,
                f"could not load template: {e}",
            )
            return None

    def _find_manifest(self, template_dir: Path) -> Path | None:
        for filename in self.manifest_filenames:
            candidate = template_dir / filename
            if candidate.is_file():
                return candidate
        return None
