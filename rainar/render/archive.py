"""
아카이브 생성: 렌더링된 템플릿 → 스트리밍 ZIP.

- 파일 1개 렌더 → ZIP 엔트리 기록 → 그 바이트를 즉시 yield
- 메모리 사용량은 파일 1개 분량 (프로젝트 전체 버퍼링 없음)
- 중간 실패 시 central directory(footer)를 쓰지 않음
  → 깨끗하게 닫힌 것처럼 보이는 잘린 아카이브를 만들지 않음
"""

import io
import logging
import zipfile
from collections.abc import Container, Iterator, Mapping
from pathlib import Path
from urllib.parse import quote

from rainar.domain.constants import ARCHIVE_COMPRESSLEVEL, ARCHIVE_EXTENSION
from rainar.domain.errors import ErrorCodes, IntegrityFailureError, PipelineError
from rainar.render.tree import iter_template_files
from rainar.render.variables import render_bytes

logger = logging.getLogger(__name__)


class _StreamBuffer(io.RawIOBase):
    """
    쓰기 전용, seek 불가 버퍼.

    zipfile은 seek 불가 출력에 data descriptor 방식으로 기록함.
    drain()으로 지금까지 쓰인 바이트를 꺼냄.
    """

    def __init__(self) -> None:
        self._chunks = bytearray()

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:  # type: ignore[override]
        self._chunks.extend(b)
        return len(b)

    def drain(self) -> bytes:
        data = bytes(self._chunks)
        self._chunks.clear()
        return data


def archive_filename(name: str) -> str:
    """다운로드 파일명: <name>.zip"""
    return f"{name}{ARCHIVE_EXTENSION}"


def content_disposition(filename: str) -> str:
    """
    attachment Content-Disposition 헤더 값 (RFC 6266 / RFC 5987).

    헤더는 latin-1로만 인코딩 가능
    → filename: ASCII 대체 이름 (비 ASCII, 따옴표, 제어 문자는 '_')
    → filename*: UTF-8 percent-encoding 원본 이름

    Args:
        filename: 원본 파일명 (예: 데모.zip)

    Returns:
        attachment; filename="..."; filename*=UTF-8''...
    """
    fallback = "".join(
        ch if 0x20 <= ord(ch) < 0x7F and ch not in '"\\' else "_"
        for ch in filename
    )
    encoded = quote(filename, safe="")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{encoded}"


def iter_archive(
    root: Path,
    variables: Mapping[str, str],
    exclude: Container[tuple[str, ...]] = (),
    compresslevel: int = ARCHIVE_COMPRESSLEVEL,
) -> Iterator[bytes]:
    """
    템플릿 디렉터리를 렌더링하며 ZIP 바이트를 스트리밍.

    Args:
        root: 템플릿 디렉터리
        variables: 렌더링 변수
        exclude: 제외할 상대 경로 (manifest)
        compresslevel: deflate 압축 레벨 (0-9)

    Yields:
        ZIP 바이트 조각 (엔트리 단위)

    Raises:
        IntegrityFailureError: 렌더/읽기 실패 (footer 미기록 상태로 중단)
    """
    buffer = _StreamBuffer()
    zf = zipfile.ZipFile(
        buffer,
        mode="w",
        compression=zipfile.ZIP_DEFLATED,
        compresslevel=compresslevel,
    )
    entries = 0

    try:
        for relative, data in iter_template_files(root, exclude):
            arcname = "/".join(relative)
            rendered = render_bytes(data, variables, source=arcname)
            zf.writestr(arcname, rendered)
            entries += 1

            chunk = buffer.drain()
            if chunk:
                yield chunk
    except PipelineError as e:
        # zf.close()를 호출하지 않음 → central directory 없음
        logger.error(f"Archive aborted after {entries} entries: {e}")
        if isinstance(e, IntegrityFailureError):
            raise
        raise IntegrityFailureError(
            ErrorCodes.ARCHIVE_FAILED,
            e.message,
            entries=entries,
        ) from e
    except (OSError, zipfile.LargeZipFile) as e:
        logger.error(f"Archive aborted after {entries} entries: {e}")
        raise IntegrityFailureError(
            ErrorCodes.ARCHIVE_FAILED,
            f"Failed to write archive: {e}",
            entries=entries,
        ) from e

    # 모든 엔트리 기록 완료 → footer 기록
    zf.close()
    tail = buffer.drain()
    if tail:
        yield tail

    logger.info(f"Archive completed: {root.name} ({entries} entries)")
