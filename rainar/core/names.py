"""
이름 검증: project name, template id, owner/repo.

규칙:
- 이름은 자기 자신의 마지막 path segment와 같아야 함 (경로 순회 차단)
- '.', '..' 금지, NUL 금지
- 파일 시스템/원격 호출 전에 검증 (I/O 없음)
"""

import posixpath
import re

from rainar.domain.errors import ErrorCodes, ValidationError

# GitHub 저장소 이름 규칙 (그 외 문자는 원격에서 '-'로 치환되어 이름이 달라짐)
REPOSITORY_NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")
REPOSITORY_NAME_MAX_LENGTH = 100

_FORBIDDEN_SEGMENTS = {".", ".."}


def sanitize_segment(value: str) -> str:
    """
    마지막 path segment만 남김.

    역슬래시도 구분자로 취급.

    Args:
        value: 원본 문자열

    Returns:
        마지막 segment (구분자로 끝나면 빈 문자열)
    """
    return posixpath.basename(value.replace("\\", "/"))


def validate_segment(value: str | None, field: str) -> str:
    """
    이름 유효성 검증.

    Args:
        value: 검증할 값
        field: 에러 context용 필드명 (name, template 등)

    Returns:
        검증된 값 (원본과 동일)

    Raises:
        ValidationError: MISSING_FIELD, PATH_TRAVERSAL
    """
    if not value or not isinstance(value, str):
        raise ValidationError(
            ErrorCodes.MISSING_FIELD,
            f"{field} is required",
            field=field,
        )

    if (
        sanitize_segment(value) != value
        or value in _FORBIDDEN_SEGMENTS
        or "\x00" in value
    ):
        raise ValidationError(
            ErrorCodes.PATH_TRAVERSAL,
            f"Invalid {field}. Path traversal characters are not allowed.",
            field=field,
        )

    return value


def validate_repository_name(name: str) -> str:
    """
    원격 저장소 이름으로 쓸 수 있는지 검증.

    validate_segment 통과 후 추가로 적용.

    Raises:
        ValidationError: INVALID_NAME
    """
    if len(name) > REPOSITORY_NAME_MAX_LENGTH:
        raise ValidationError(
            ErrorCodes.INVALID_NAME,
            f"Repository name exceeds {REPOSITORY_NAME_MAX_LENGTH} characters",
            length=len(name),
        )

    if not REPOSITORY_NAME_PATTERN.match(name):
        raise ValidationError(
            ErrorCodes.INVALID_NAME,
            "Repository name may only contain letters, digits, '.', '-' and '_'",
            pattern=REPOSITORY_NAME_PATTERN.pattern,
        )

    return name
