"""
트리 워커: 템플릿 디렉터리 재귀 순회.

- 모든 일반 파일을 정확히 한 번 방문 (디렉터리는 경로로만 표현)
- 정렬된 깊이 우선 순서 (같은 스냅샷이면 항상 같은 순서)
- symlink 디렉터리는 따라가지 않음
- symlink 파일은 대상이 루트 내부일 때만 포함
"""

import logging
import os
from collections.abc import Callable, Container, Iterator
from pathlib import Path
from typing import TypeVar

from rainar.domain.errors import ErrorCodes, IntegrityFailureError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _inside(path: Path, root: Path) -> bool:
    """resolve된 경로가 root 내부인지 확인."""
    try:
        path.resolve(strict=True).relative_to(root)
        return True
    except (ValueError, OSError):
        return False


def iter_template_paths(
    root: Path,
    exclude: Container[tuple[str, ...]] = (),
) -> Iterator[tuple[tuple[str, ...], Path]]:
    """
    템플릿 파일 경로를 lazy하게 순회.

    Args:
        root: 템플릿 디렉터리
        exclude: 제외할 상대 경로 (예: {("rainar-template.yaml",)})

    Yields:
        (상대 경로 segment 튜플, 절대 경로)

    Raises:
        IntegrityFailureError: TEMPLATE_READ_FAILED (루트 또는 하위 디렉터리 읽기 실패)
    """
    if not root.is_dir():
        raise IntegrityFailureError(
            ErrorCodes.TEMPLATE_READ_FAILED,
            "Template directory is missing or not a directory",
            path=str(root),
        )

    resolved_root = root.resolve()

    def on_walk_error(error: OSError) -> None:
        # os.walk는 읽을 수 없는 디렉터리를 조용히 건너뜀 → 일부 누락된 트리 금지
        raise IntegrityFailureError(
            ErrorCodes.TEMPLATE_READ_FAILED,
            f"Failed to list template directory: {error}",
            path=str(error.filename or root),
        ) from error

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_walk_error, followlinks=False):
        # 순서 고정 (os.walk는 dirnames를 제자리에서 수정하면 그 순서로 내려감)
        dirnames.sort()
        current = Path(dirpath)
        relative_dir = current.relative_to(root).parts

        for filename in sorted(filenames):
            file_path = current / filename
            relative = (*relative_dir, filename)

            if relative in exclude:
                continue

            if file_path.is_symlink():
                if not _inside(file_path, resolved_root):
                    logger.warning(f"Skipping symlink outside template root: {'/'.join(relative)}")
                    continue

            if not file_path.is_file():
                continue

            yield relative, file_path


def iter_template_files(
    root: Path,
    exclude: Container[tuple[str, ...]] = (),
) -> Iterator[tuple[tuple[str, ...], bytes]]:
    """
    템플릿 파일 내용을 한 개씩 읽어서 순회.

    메모리 사용량은 파일 1개 크기로 제한.

    Yields:
        (상대 경로 segment 튜플, 파일 바이트)

    Raises:
        IntegrityFailureError: TEMPLATE_READ_FAILED
    """
    for relative, file_path in iter_template_paths(root, exclude):
        try:
            data = file_path.read_bytes()
        except OSError as e:
            raise IntegrityFailureError(
                ErrorCodes.TEMPLATE_READ_FAILED,
                f"Failed to read template file: {e}",
                file="/".join(relative),
            ) from e
        yield relative, data


def walk_template(
    root: Path,
    visit: Callable[[tuple[str, ...], bytes], T],
    exclude: Container[tuple[str, ...]] = (),
) -> list[T]:
    """
    모든 템플릿 파일에 visit을 적용하고 결과를 모음.

    Args:
        root: 템플릿 디렉터리
        visit: (상대 경로, 바이트) → T
        exclude: 제외할 상대 경로

    Returns:
        파일별 visit 결과 목록 (순회 순서)
    """
    return [visit(relative, data) for relative, data in iter_template_files(root, exclude)]
