"""
ID 생성: provisioning run_id

로그에서 한 번의 저장소 생성 과정을 추적하기 위한 ID.
"""

import uuid
from datetime import UTC, datetime


def generate_run_id() -> str:
    """
    Run ID 생성.

    고유성 보장: UUID v4
    포맷: RUN-{timestamp}-{uuid[:8]}

    Returns:
        run_id 문자열
    """
    now = datetime.now(UTC)
    timestamp = now.strftime("%Y%m%d%H%M%S")
    unique = uuid.uuid4().hex[:8]

    return f"RUN-{timestamp}-{unique}"
