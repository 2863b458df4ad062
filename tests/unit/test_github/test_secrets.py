"""
test_secrets.py - Actions secret sealing 테스트

DoD:
- [A, B] → PUT 2회, 평문이 아닌 sealing된 값
- 빈 목록 → 원격 호출 0회
- 잘못된 public key → SECRET_SEAL_FAILED
"""

import base64

import pytest
from nacl import public

from rainar.domain.errors import ErrorCodes, IntegrityFailureError
from rainar.domain.schemas import SecretSubmission
from rainar.github.secrets import seal_secret, set_repository_secrets


class TestSealSecret:
    """seal_secret 함수 테스트."""

    def test_only_private_key_holder_can_open(self, fake_github):
        sealed = seal_secret(fake_github.public_key, "s3cr3t")

        opened = public.SealedBox(fake_github.private_key).decrypt(base64.b64decode(sealed))
        assert opened == b"s3cr3t"

    def test_not_plaintext(self, fake_github):
        sealed = seal_secret(fake_github.public_key, "s3cr3t")

        assert "s3cr3t" not in sealed
        assert b"s3cr3t" not in base64.b64decode(sealed)

    def test_anonymous_sealing_is_randomized(self, fake_github):
        assert seal_secret(fake_github.public_key, "x") != seal_secret(fake_github.public_key, "x")

    @pytest.mark.parametrize("key", ["not base64!!", base64.b64encode(b"short").decode()])
    def test_invalid_key(self, key):
        with pytest.raises(IntegrityFailureError) as exc_info:
            seal_secret(key, "value")

        assert exc_info.value.code == ErrorCodes.SECRET_SEAL_FAILED


class TestSetRepositorySecrets:
    """set_repository_secrets 함수 테스트."""

    @pytest.mark.asyncio
    async def test_two_secrets_two_puts(self, fake_github):
        secrets = [SecretSubmission("A", "x"), SecretSubmission("B", "y")]

        async with fake_github.client() as client:
            submitted = await set_repository_secrets(client, "octo", "demo", secrets)

        assert submitted == ["A", "B"]
        puts = [(path, body) for method, path, body in fake_github.calls if method == "PUT"]
        assert [path for path, _ in puts] == [
            "/repos/octo/demo/actions/secrets/A",
            "/repos/octo/demo/actions/secrets/B",
        ]

        box = public.SealedBox(fake_github.private_key)
        for (_, body), plaintext in zip(puts, [b"x", b"y"], strict=True):
            assert body["key_id"] == "key-1"
            assert body["encrypted_value"] not in ("x", "y")
            assert box.decrypt(base64.b64decode(body["encrypted_value"])) == plaintext

    @pytest.mark.asyncio
    async def test_public_key_fetched_once(self, fake_github):
        secrets = [SecretSubmission(f"S{i}", "v") for i in range(3)]

        async with fake_github.client() as client:
            await set_repository_secrets(client, "octo", "demo", secrets)

        assert fake_github.paths("GET") == ["/repos/octo/demo/actions/secrets/public-key"]

    @pytest.mark.asyncio
    async def test_empty_list_no_calls(self, fake_github):
        async with fake_github.client() as client:
            submitted = await set_repository_secrets(client, "octo", "demo", [])

        assert submitted == []
        assert fake_github.calls == []

    def test_value_hidden_from_repr(self):
        assert "hunter2" not in repr(SecretSubmission("A", "hunter2"))
