"""
Pytest fixtures for the provisioning tests.

구성:
- 템플릿 디렉터리 (tmp_path)
- 카탈로그 / 서비스
- 가짜 GitHub API (httpx.MockTransport, 호출 기록)
"""

import hashlib
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest
import yaml
from nacl import encoding, public

from rainar.app.service import ProvisioningService
from rainar.github.client import GitHubClient
from rainar.templates.catalog import TemplateCatalog

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def project_root() -> Path:
    """프로젝트 루트 경로."""
    return Path(__file__).parent.parent


@pytest.fixture
def default_config_path(project_root: Path) -> Path:
    """default.yaml 경로."""
    return project_root / "default.yaml"


@pytest.fixture
def default_config(default_config_path: Path) -> dict:
    """기본 설정 로드."""
    with open(default_config_path, encoding="utf-8") as f:
        return yaml.safe_load(f)


# =============================================================================
# Template Fixtures
# =============================================================================


def write_template(
    root: Path,
    template_id: str,
    manifest: dict[str, Any] | None,
    files: dict[str, str | bytes],
) -> Path:
    """templates/<template_id>/ 생성 (manifest가 None이면 manifest 없음)."""
    template_dir = root / template_id
    template_dir.mkdir(parents=True)
    if manifest is not None:
        (template_dir / "rainar-template.yaml").write_text(
            yaml.safe_dump(manifest), encoding="utf-8"
        )
    for relative, content in files.items():
        path = template_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return template_dir


@pytest.fixture
def make_template() -> Callable[..., Path]:
    """write_template 헬퍼."""
    return write_template


@pytest.fixture
def templates_root(tmp_path: Path) -> Path:
    """
    basic-api 템플릿 1개를 가진 templates 루트.

    파일: pkg.json 1개 ({"name":"{{projectName}}"})
    """
    root = tmp_path / "templates"
    root.mkdir()
    write_template(
        root,
        "basic-api",
        {"id": "basic-api", "name": "Basic API", "description": "Minimal API"},
        {"pkg.json": '{"name":"{{projectName}}"}'},
    )
    return root


@pytest.fixture
def rich_templates_root(tmp_path: Path) -> Path:
    """
    중첩 디렉터리, 바이너리, GitHub Actions 표현식을 포함한 템플릿.

    - README.md: projectName, projectDescription
    - .github/workflows/ci.yml: ${{ secrets.DEPLOY_TOKEN }}
    - assets/logo.bin: UTF-8 아닌 바이트
    """
    root = tmp_path / "templates"
    root.mkdir()
    write_template(
        root,
        "service",
        {
            "name": "Service",
            "description": "Service with CI",
            "secrets": [{"name": "DEPLOY_TOKEN"}],
            "workflow_id": "ci.yml",
        },
        {
            "README.md": "# {{projectName}}\n\n{{ projectDescription }}\n",
            ".github/workflows/ci.yml": (
                "name: CI\n"
                "env:\n"
                "  TOKEN: ${{ secrets.DEPLOY_TOKEN }}\n"
                "  APP: {{projectName}}\n"
            ),
            "assets/logo.bin": b"\x89PNG\r\n\x1a\n\xff\xfe\x00",
            "src/main.py": "print('{{projectName}}')\n",
        },
    )
    return root


@pytest.fixture
def catalog(templates_root: Path) -> TemplateCatalog:
    """basic-api 카탈로그."""
    return TemplateCatalog(templates_root)


# =============================================================================
# Fake GitHub API
# =============================================================================


class FakeGitHub:
    """
    GitHub REST API 흉내 (MockTransport handler).

    - 모든 호출을 (method, path, body)로 기록
    - fail_on: (method, path suffix) → 대신 돌려줄 응답
    """

    def __init__(self, owner: str = "octo") -> None:
        self.owner = owner
        self.calls: list[tuple[str, str, Any]] = []
        self.fail_on: dict[tuple[str, str], httpx.Response] = {}
        self.runs: list[dict[str, Any]] = []
        self.private_key = public.PrivateKey.generate()
        self.key_id = "key-1"

    @property
    def public_key(self) -> str:
        return self.private_key.public_key.encode(encoding.Base64Encoder()).decode("utf-8")

    def client(self, access_token: str | None = "gho_test") -> GitHubClient:
        return GitHubClient(
            access_token,
            api_url="https://api.github.test",
            retry_delay=0,
            transport=httpx.MockTransport(self.handler),
        )

    def paths(self, method: str | None = None) -> list[str]:
        return [path for m, path, _ in self.calls if method is None or m == method]

    def handler(self, request: httpx.Request) -> httpx.Response:
        method = request.method
        path = request.url.path
        body = json.loads(request.content) if request.content else None
        self.calls.append((method, path, body))

        for (fail_method, suffix), response in self.fail_on.items():
            if method == fail_method and path.endswith(suffix):
                return response

        if method == "POST" and path == "/user/repos":
            name = body["name"]
            return httpx.Response(
                201,
                json={
                    "name": name,
                    "owner": {"login": self.owner},
                    "html_url": f"https://github.com/{self.owner}/{name}",
                    "default_branch": "main",
                },
            )
        if method == "POST" and path.endswith("/git/blobs"):
            sha = hashlib.sha1(body["content"].encode("ascii")).hexdigest()
            return httpx.Response(201, json={"sha": sha})
        if method == "POST" and path.endswith("/git/trees"):
            return httpx.Response(201, json={"sha": "tree-sha"})
        if method == "POST" and path.endswith("/git/commits"):
            return httpx.Response(201, json={"sha": "commit-sha"})
        if method == "PATCH" and "/git/refs/heads/" in path:
            return httpx.Response(200, json={"object": {"sha": body["sha"]}})
        if method == "GET" and path.endswith("/actions/secrets/public-key"):
            return httpx.Response(200, json={"key_id": self.key_id, "key": self.public_key})
        if method == "PUT" and "/actions/secrets/" in path:
            return httpx.Response(201)
        if method == "POST" and path.endswith("/dispatches"):
            return httpx.Response(204)
        if method == "GET" and path.endswith("/runs"):
            return httpx.Response(
                200,
                json={"total_count": len(self.runs), "workflow_runs": self.runs},
            )
        return httpx.Response(404, json={"message": "Not Found"})


@pytest.fixture
def fake_github() -> FakeGitHub:
    """호출을 기록하는 가짜 GitHub."""
    return FakeGitHub()


@pytest.fixture
def service_factory(
    fake_github: FakeGitHub,
) -> Callable[[Path], ProvisioningService]:
    """templates 루트 → 가짜 GitHub에 연결된 ProvisioningService."""

    def factory(root: Path) -> ProvisioningService:
        return ProvisioningService(
            TemplateCatalog(root),
            client_factory=fake_github.client,
        )

    return factory


@pytest.fixture
def service(
    templates_root: Path,
    service_factory: Callable[[Path], ProvisioningService],
) -> ProvisioningService:
    """basic-api 서비스."""
    return service_factory(templates_root)
