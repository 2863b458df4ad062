"""
재시도 로직 유틸리티.

멱등 조회 호출(public key, workflow run 목록)의 일시적 실패에만 사용.
저장소 생성 단계(변경 호출)는 재시도하지 않음.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_with_exponential_backoff(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    **kwargs: Any,
) -> T:
    """
    지수 백오프를 사용한 재시도.

    Args:
        func: 재시도할 비동기 함수
        *args: func에 전달할 위치 인자
        max_retries: 최대 재시도 횟수
        initial_delay: 초기 대기 시간(초)
        max_delay: 최대 대기 시간(초)
        exponential_base: 지수 백오프 기수
        exceptions: 재시도할 예외 타입들
        **kwargs: func에 전달할 키워드 인자

    Returns:
        func의 반환값

    Raises:
        마지막 시도에서 발생한 예외
    """
    delay = initial_delay

    for attempt in range(max_retries + 1):
        try:
            result = await func(*args, **kwargs)
            if attempt > 0:
                logger.info(
                    f"Retry succeeded on attempt {attempt + 1}/{max_retries + 1}"
                )
            return result

        except exceptions as e:
            if attempt == max_retries:
                logger.error(
                    f"All {max_retries + 1} attempts failed. Last error: {e}"
                )
                raise

            logger.warning(
                f"Attempt {attempt + 1}/{max_retries + 1} failed: {e}. "
                f"Retrying in {delay:.1f}s..."
            )

            await asyncio.sleep(delay)

            # 지수 백오프
            delay = min(delay * exponential_base, max_delay)

    # Should never reach here
    msg = "Unexpected retry logic error"
    raise RuntimeError(msg)
