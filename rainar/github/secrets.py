"""
Secret sealer: Actions secret 암호화 + 제출.

- 저장소 public key로 익명 sealing (libsodium sealed box, PyNaCl)
- 송신자 인증 없음: 개인 키 보유자(GitHub)만 복호화 가능
- 순차 제출, 중간 실패 시 이미 제출된 secret은 그대로 (롤백 없음)
- 평문은 저장/로그 금지
"""

import base64
import binascii
import logging
from collections.abc import Sequence

from nacl import encoding, public
from nacl.exceptions import CryptoError

from rainar.domain.errors import ErrorCodes, IntegrityFailureError
from rainar.domain.schemas import SealedSecret, SecretSubmission
from rainar.github.client import GitHubClient

logger = logging.getLogger(__name__)


def seal_secret(public_key: str, value: str) -> str:
    """
    평문을 저장소 public key로 sealing.

    Args:
        public_key: base64 인코딩된 Curve25519 public key
        value: 평문

    Returns:
        base64 인코딩된 암호문

    Raises:
        IntegrityFailureError: SECRET_SEAL_FAILED (잘못된 key)
    """
    try:
        key = public.PublicKey(public_key.encode("utf-8"), encoding.Base64Encoder())
        sealed_box = public.SealedBox(key)
        encrypted = sealed_box.encrypt(value.encode("utf-8"))
    except (CryptoError, binascii.Error, ValueError, TypeError) as e:
        raise IntegrityFailureError(
            ErrorCodes.SECRET_SEAL_FAILED,
            "Repository public key is invalid",
        ) from e
    return base64.b64encode(encrypted).decode("utf-8")


async def set_repository_secrets(
    client: GitHubClient,
    owner: str,
    repo: str,
    secrets: Sequence[SecretSubmission],
) -> list[str]:
    """
    secret 목록을 sealing해서 순차 제출.

    빈 목록이면 원격 호출 없음 (public key 조회도 생략).

    Args:
        client: 인증된 GitHub 클라이언트
        owner: 저장소 소유자
        repo: 저장소 이름
        secrets: 제출할 secret 목록

    Returns:
        제출된 secret 이름 목록
    """
    if not secrets:
        return []

    key_id, public_key = await client.get_public_key(owner, repo)

    submitted: list[str] = []
    for secret in secrets:
        sealed = SealedSecret(
            name=secret.name,
            encrypted_value=seal_secret(public_key, secret.value),
            key_id=key_id,
        )
        await client.put_secret(owner, repo, sealed)
        submitted.append(secret.name)
        logger.info(f"Secret '{secret.name}' set on {owner}/{repo}")

    return submitted
