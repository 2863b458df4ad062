"""
Core layer: 이름 검증, run ID, 실행 로그.

역할:
- 경로 순회 차단 (names)
- provisioning 실행 추적 (ids, logging)
"""

from .ids import generate_run_id
from .logging import (
    complete_provisioning_log,
    create_provisioning_log,
    emit_step,
    emit_warning,
)
from .names import sanitize_segment, validate_repository_name, validate_segment

__all__ = [
    # names
    "sanitize_segment",
    "validate_segment",
    "validate_repository_name",
    # ids
    "generate_run_id",
    # logging
    "create_provisioning_log",
    "emit_step",
    "emit_warning",
    "complete_provisioning_log",
]
