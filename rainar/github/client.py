"""
GitHub REST API 클라이언트 (httpx 기반).

역할:
- 저장소 생성, git data (blob/tree/commit/ref), Actions secret, workflow dispatch/run 조회
- HTTP 상태 → 파이프라인 에러 분류
- 멱등 조회(GET)만 재시도, 변경 호출은 재시도 안 함

주의: access token / secret 평문은 로그에 남기지 않음.
"""

import base64
import logging
from typing import Any
from urllib.parse import quote

import httpx

from rainar.domain.constants import (
    BLOB_FILE_MODE,
    DEFAULT_BRANCH,
    GITHUB_ACCEPT,
    GITHUB_API_URL,
    GITHUB_API_VERSION,
)
from rainar.domain.errors import (
    ErrorCodes,
    RemoteConflictError,
    RemoteFailureError,
    RemoteUnavailableError,
    UnauthorizedError,
)
from rainar.domain.schemas import RemoteRepository, SealedSecret
from rainar.utils.retry import retry_with_exponential_backoff

logger = logging.getLogger(__name__)


def _segment(value: str, safe: str = "") -> str:
    """URL 경로 세그먼트 인코딩 ('/', '?', '#' 등이 경로를 바꾸지 못하게)."""
    return quote(str(value), safe=safe)


def _repo_path(owner: str, repo: str, *segments: str) -> str:
    """/repos/<owner>/<repo>/... (owner, repo는 인코딩)."""
    return "/".join(["/repos", _segment(owner), _segment(repo), *segments])


class GitHubClient:
    """
    GitHub API 클라이언트.

    Usage:
        async with GitHubClient(access_token) as client:
            repo = await client.create_repository("demo")
    """

    def __init__(
        self,
        access_token: str | None,
        api_url: str = GITHUB_API_URL,
        timeout: float = 30.0,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            access_token: 인증된 사용자의 OAuth/PAT 토큰
            api_url: API base URL (GitHub Enterprise 지원)
            timeout: 요청 타임아웃(초)
            max_retries: 조회 호출 최대 재시도 횟수
            retry_delay: 재시도 초기 대기(초)
            transport: httpx transport (테스트 주입용)

        Raises:
            UnauthorizedError: 토큰이 없을 때 (원격 호출 전 fail-fast)
        """
        if not access_token:
            raise UnauthorizedError(
                ErrorCodes.UNAUTHORIZED,
                "GitHub access token is missing. Please log in again.",
            )

        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._access_token = access_token
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def __repr__(self) -> str:
        return f"GitHubClient(api_url={self.api_url!r})"

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        """httpx 클라이언트 (lazy init)."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "Accept": GITHUB_ACCEPT,
                    "Authorization": f"Bearer {self._access_token}",
                    "X-GitHub-Api-Version": GITHUB_API_VERSION,
                },
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # =========================================================================
    # Transport
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """
        API 호출 1회.

        Returns:
            JSON 응답 (204면 None)

        Raises:
            UnauthorizedError, RemoteConflictError, RemoteFailureError
        """
        try:
            response = await self._get_client().request(
                method, path, json=json, params=params
            )
        except httpx.TransportError as e:
            logger.warning(f"GitHub {method} {path} transport error: {e}")
            raise RemoteUnavailableError(
                ErrorCodes.REMOTE_UNREACHABLE,
                f"GitHub is unreachable: {e}",
                method=method,
                path=path,
            ) from e

        if response.is_success:
            if response.status_code == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError as e:
                logger.warning(f"GitHub {method} {path} returned a non-JSON body")
                raise RemoteFailureError(
                    ErrorCodes.REMOTE_ERROR,
                    "GitHub returned an invalid JSON body",
                    method=method,
                    path=path,
                    status=response.status_code,
                ) from e

        raise self._classify(response, method, path)

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """멱등 조회 (일시적 실패 재시도)."""
        return await retry_with_exponential_backoff(
            self._request,
            "GET",
            path,
            params=params,
            max_retries=self.max_retries,
            initial_delay=self.retry_delay,
            exceptions=(RemoteUnavailableError,),
        )

    @staticmethod
    def _classify(response: httpx.Response, method: str, path: str) -> Exception:
        """HTTP 에러 응답 → 파이프라인 에러."""
        status = response.status_code
        try:
            body = response.json()
            remote_message = body.get("message", "") if isinstance(body, dict) else ""
            details = body.get("errors", []) if isinstance(body, dict) else []
        except ValueError:
            remote_message = response.text[:200]
            details = []

        context = {"status": status, "method": method, "path": path}
        logger.warning(f"GitHub {method} {path} failed: {status} {remote_message}")

        if status == 401 or (status == 403 and "bad credentials" in remote_message.lower()):
            return UnauthorizedError(
                ErrorCodes.UNAUTHORIZED,
                "GitHub rejected the access token. Please log in again.",
                **context,
            )

        detail_text = " ".join(
            str(d.get("message", "")) if isinstance(d, dict) else str(d) for d in details
        )
        if status == 422 and "already exists" in f"{remote_message} {detail_text}":
            return RemoteConflictError(
                ErrorCodes.REPOSITORY_EXISTS,
                "A repository with this name already exists",
                **context,
            )

        if status == 409:
            return RemoteConflictError(
                ErrorCodes.REMOTE_CONFLICT,
                remote_message or "GitHub reported a conflict",
                **context,
            )

        if status == 404:
            return RemoteFailureError(
                ErrorCodes.REMOTE_NOT_FOUND,
                remote_message or "Not Found",
                **context,
            )

        if status >= 500:
            return RemoteUnavailableError(
                ErrorCodes.REMOTE_ERROR,
                remote_message or "GitHub server error",
                **context,
            )

        return RemoteFailureError(
            ErrorCodes.REMOTE_ERROR,
            remote_message or f"GitHub request failed with status {status}",
            **context,
        )

    # =========================================================================
    # Repository
    # =========================================================================

    async def create_repository(
        self,
        name: str,
        private: bool = True,
        description: str | None = None,
        auto_init: bool = True,
    ) -> RemoteRepository:
        """
        인증된 사용자 아래 저장소 생성.

        auto_init=True: git database가 비어 있으면 blob/tree API가 409를
        돌려주므로 초기 커밋이 있는 상태로 만들고, 이후 ref를 강제 갱신함.
        """
        payload: dict[str, Any] = {
            "name": name,
            "private": private,
            "auto_init": auto_init,
        }
        if description:
            payload["description"] = description

        data = await self._request("POST", "/user/repos", json=payload)
        return RemoteRepository(
            owner=data["owner"]["login"],
            name=data["name"],
            default_branch=data.get("default_branch") or DEFAULT_BRANCH,
            html_url=data["html_url"],
        )

    # =========================================================================
    # Git Data
    # =========================================================================

    async def create_blob(self, owner: str, repo: str, content: bytes) -> str:
        """blob 생성 (base64). 반환: blob sha."""
        data = await self._request(
            "POST",
            _repo_path(owner, repo, "git", "blobs"),
            json={
                "content": base64.b64encode(content).decode("ascii"),
                "encoding": "base64",
            },
        )
        return data["sha"]

    async def create_tree(
        self,
        owner: str,
        repo: str,
        blobs: dict[str, str],
    ) -> str:
        """
        tree 생성.

        Args:
            blobs: 경로 → blob sha

        Returns:
            tree sha
        """
        entries = [
            {"path": path, "mode": BLOB_FILE_MODE, "type": "blob", "sha": sha}
            for path, sha in blobs.items()
        ]
        data = await self._request(
            "POST",
            _repo_path(owner, repo, "git", "trees"),
            json={"tree": entries},
        )
        return data["sha"]

    async def create_commit(
        self,
        owner: str,
        repo: str,
        message: str,
        tree_sha: str,
        parents: list[str] | None = None,
    ) -> str:
        """commit 생성. 반환: commit sha."""
        data = await self._request(
            "POST",
            _repo_path(owner, repo, "git", "commits"),
            json={"message": message, "tree": tree_sha, "parents": parents or []},
        )
        return data["sha"]

    async def update_ref(
        self,
        owner: str,
        repo: str,
        branch: str,
        sha: str,
        force: bool = True,
    ) -> None:
        """branch ref를 commit으로 이동."""
        await self._request(
            "PATCH",
            _repo_path(owner, repo, "git", "refs", "heads", _segment(branch, safe="/")),
            json={"sha": sha, "force": force},
        )

    # =========================================================================
    # Actions: Secrets
    # =========================================================================

    async def get_public_key(self, owner: str, repo: str) -> tuple[str, str]:
        """저장소 Actions public key 조회. 반환: (key_id, base64 key)."""
        data = await self._get(_repo_path(owner, repo, "actions", "secrets", "public-key"))
        return data["key_id"], data["key"]

    async def put_secret(self, owner: str, repo: str, sealed: SealedSecret) -> None:
        """sealing된 secret 생성/갱신."""
        await self._request(
            "PUT",
            _repo_path(owner, repo, "actions", "secrets", _segment(sealed.name)),
            json={"encrypted_value": sealed.encrypted_value, "key_id": sealed.key_id},
        )

    # =========================================================================
    # Actions: Workflows
    # =========================================================================

    async def dispatch_workflow(
        self,
        owner: str,
        repo: str,
        workflow_id: str,
        ref: str,
        inputs: dict[str, str] | None = None,
    ) -> None:
        """workflow_dispatch 이벤트 발생."""
        payload: dict[str, Any] = {"ref": ref}
        if inputs:
            payload["inputs"] = inputs
        await self._request(
            "POST",
            _repo_path(
                owner, repo, "actions", "workflows", _segment(workflow_id), "dispatches"
            ),
            json=payload,
        )

    async def list_workflow_runs(
        self,
        owner: str,
        repo: str,
        workflow_id: str,
        per_page: int = 100,
    ) -> list[dict[str, Any]]:
        """workflow 실행 목록 (원격 정렬 순서 그대로)."""
        data = await self._get(
            _repo_path(
                owner, repo, "actions", "workflows", _segment(workflow_id), "runs"
            ),
            params={"per_page": per_page},
        )
        runs = (data or {}).get("workflow_runs") or []
        return list(runs)
