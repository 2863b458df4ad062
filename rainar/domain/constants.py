"""
Domain Constants: 파이프라인 전역 상수.

manifest 파일명, 아카이브 형식, 원격 호스트 기본값 등.
"""

# =============================================================================
# Template Directory Structure (템플릿 디렉토리 구조)
# =============================================================================
# templates/<template_id>/
# ├── rainar-template.yaml (또는 .json)  # manifest
# └── ...                                 # 프로젝트 파일 (placeholder 포함)

MANIFEST_FILENAMES = ("rainar-template.yaml", "rainar-template.json")

# =============================================================================
# Variables
# =============================================================================

PROJECT_NAME_VARIABLE = "projectName"
PROJECT_DESCRIPTION_VARIABLE = "projectDescription"  # 기본값: 템플릿 description

# =============================================================================
# Archive
# =============================================================================

ARCHIVE_EXTENSION = ".zip"
ARCHIVE_MEDIA_TYPE = "application/zip"
ARCHIVE_COMPRESSLEVEL = 9  # 프로젝트가 작으므로 최대 압축

# =============================================================================
# Remote Host (GitHub REST API)
# =============================================================================

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
GITHUB_ACCEPT = "application/vnd.github+json"
DEFAULT_BRANCH = "main"

# git tree entry mode (일반 파일)
BLOB_FILE_MODE = "100644"

# 동시 blob 생성 상한
BLOB_CONCURRENCY = 8
