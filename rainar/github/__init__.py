"""
GitHub layer: 원격 저장소 생성 프로토콜.

역할:
- REST 클라이언트 (client.py)
- 저장소 생성 단계 오케스트레이션 (provisioner.py)
- Actions secret sealing (secrets.py)
- workflow dispatch / 상태 조회 (workflows.py)
"""

from .client import GitHubClient
from .provisioner import ProvisioningStep, RepositoryProvisioner, StepOutcome
from .secrets import seal_secret, set_repository_secrets
from .workflows import dispatch_workflow, get_latest_run_status

__all__ = [
    "GitHubClient",
    "RepositoryProvisioner",
    "ProvisioningStep",
    "StepOutcome",
    "seal_secret",
    "set_repository_secrets",
    "dispatch_workflow",
    "get_latest_run_status",
]
