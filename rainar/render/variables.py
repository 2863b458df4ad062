"""
변수 렌더러: 평면 key/value 치환.

- placeholder: {{projectName}}, {{ projectDescription }}
- ${{ ... }} (GitHub Actions 표현식)은 placeholder 아님 → 그대로 유지
- 미해결 placeholder → UnresolvedPlaceholderError (archive/저장소 경로 공통)
- UTF-8이 아닌 파일 (이미지 등) → 바이트 그대로 통과
"""

import re
from collections.abc import Mapping

from rainar.domain.constants import PROJECT_NAME_VARIABLE
from rainar.domain.errors import ErrorCodes, UnresolvedPlaceholderError, ValidationError

PLACEHOLDER_PATTERN = re.compile(r"(?<!\$)\{\{\s*(\w+)\s*\}\}")


def detect_placeholders(text: str) -> list[str]:
    """
    텍스트에서 placeholder 이름 목록 추출 (등장 순서, 중복 포함).

    Args:
        text: 검색할 텍스트

    Returns:
        placeholder 이름 목록
    """
    return PLACEHOLDER_PATTERN.findall(text)


def render_text(text: str, variables: Mapping[str, str], source: str | None = None) -> str:
    """
    텍스트의 placeholder를 변수 값으로 치환.

    Pure: 입력 외 상태 없음.

    Args:
        text: 템플릿 텍스트
        variables: 평면 변수 mapping
        source: 에러 context용 파일 경로

    Returns:
        렌더링된 텍스트 (placeholder가 없으면 원본 그대로)

    Raises:
        UnresolvedPlaceholderError: variables에 없는 키 참조
    """
    missing = [key for key in detect_placeholders(text) if key not in variables]
    if missing:
        raise UnresolvedPlaceholderError(
            ErrorCodes.UNRESOLVED_PLACEHOLDER,
            f"Unresolved placeholder(s): {', '.join(sorted(set(missing)))}",
            file=source,
            missing=sorted(set(missing)),
        )

    return PLACEHOLDER_PATTERN.sub(lambda m: str(variables[m.group(1)]), text)


def render_bytes(
    data: bytes,
    variables: Mapping[str, str],
    source: str | None = None,
) -> str | bytes:
    """
    파일 내용 렌더링.

    UTF-8로 디코딩되면 텍스트로 렌더링, 아니면 바이트 그대로 반환.
    """
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return data
    return render_text(text, variables, source=source)


def build_variables(
    project_name: str,
    config: Mapping[str, str] | None = None,
    defaults: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """
    렌더링 변수 구성.

    우선순위: projectName > caller config > defaults
    (projectName은 항상 검증된 이름으로 덮어씀)

    Args:
        project_name: 검증된 프로젝트 이름
        config: caller가 보낸 변수
        defaults: 템플릿 기본값 (예: projectDescription)

    Raises:
        ValidationError: INVALID_CONFIG (key/value가 문자열이 아님)
    """
    if config is not None and not isinstance(config, Mapping):
        raise ValidationError(ErrorCodes.INVALID_CONFIG, "config must be an object")

    variables: dict[str, str] = dict(defaults or {})
    for key, value in (config or {}).items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise ValidationError(
                ErrorCodes.INVALID_CONFIG,
                "config must map strings to strings",
                key=str(key),
            )
        variables[key] = value

    variables[PROJECT_NAME_VARIABLE] = project_name
    return variables
