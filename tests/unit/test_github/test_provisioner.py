"""
test_provisioner.py - 저장소 프로비저너 테스트

DoD:
- 파일당 blob 1회 → tree 1회 → commit 1회 (parent 없음) → ref 1회, 이 순서
- 실패 시 남은 단계 중단, 실패 단계가 에러에 기록
- manifest는 저장소에 포함되지 않음
"""

import base64
import shutil
from pathlib import Path

import httpx
import pytest

from rainar.domain.errors import (
    ErrorCodes,
    IntegrityFailureError,
    RemoteConflictError,
    RemoteFailureError,
    UnresolvedPlaceholderError,
)
from rainar.domain.schemas import ProvisioningRequest
from rainar.github.provisioner import ProvisioningStep, RepositoryProvisioner, render_files
from rainar.templates.catalog import TemplateCatalog


def step_sequence(calls) -> list[str]:
    """기록된 호출 → 단계 이름 순서."""
    names = []
    for method, path, _ in calls:
        if path == "/user/repos":
            names.append("repo")
        elif path.endswith("/git/blobs"):
            names.append("blob")
        elif path.endswith("/git/trees"):
            names.append("tree")
        elif path.endswith("/git/commits"):
            names.append("commit")
        elif "/git/refs/heads/" in path:
            names.append("ref")
        else:
            names.append(f"{method} {path}")
    return names


# =============================================================================
# render_files 테스트
# =============================================================================


class TestRenderFiles:
    """render_files 함수 테스트."""

    def test_excludes_manifest(self, templates_root: Path):
        files = render_files(
            templates_root / "basic-api",
            {"projectName": "demo"},
            frozenset({("rainar-template.yaml",)}),
        )

        assert [f.path for f in files] == ["pkg.json"]
        assert files[0].as_bytes() == b'{"name":"demo"}'


# =============================================================================
# provision 테스트
# =============================================================================


class TestProvision:
    """RepositoryProvisioner.provision 테스트."""

    @pytest.mark.asyncio
    async def test_basic_api_call_order(self, catalog, fake_github):
        async with fake_github.client() as client:
            provisioner = RepositoryProvisioner(client, catalog)
            result = await provisioner.provision(
                ProvisioningRequest(project_name="demo", template_id="basic-api")
            )

        assert step_sequence(fake_github.calls) == ["repo", "blob", "tree", "commit", "ref"]
        assert result.url == "https://github.com/octo/demo"
        assert result.to_dict() == {
            "url": "https://github.com/octo/demo",
            "owner": "octo",
            "repo": "demo",
        }
        assert result.steps == [s.value for s in ProvisioningStep]

    @pytest.mark.asyncio
    async def test_commit_has_zero_parents(self, catalog, fake_github):
        async with fake_github.client() as client:
            await RepositoryProvisioner(client, catalog).provision(
                ProvisioningRequest(project_name="demo", template_id="basic-api")
            )

        commit_body = next(
            body for _, path, body in fake_github.calls if path.endswith("/git/commits")
        )
        assert commit_body["parents"] == []
        assert commit_body["tree"] == "tree-sha"
        assert "basic-api" in commit_body["message"]

        ref_body = next(
            body for _, path, body in fake_github.calls if "/git/refs/heads/" in path
        )
        assert ref_body == {"sha": "commit-sha", "force": True}

    @pytest.mark.asyncio
    async def test_one_blob_per_file(self, rich_templates_root: Path, fake_github):
        catalog = TemplateCatalog(rich_templates_root)

        async with fake_github.client() as client:
            await RepositoryProvisioner(client, catalog, blob_concurrency=2).provision(
                ProvisioningRequest(project_name="demo", template_id="service")
            )

        sequence = step_sequence(fake_github.calls)
        assert sequence == ["repo", "blob", "blob", "blob", "blob", "tree", "commit", "ref"]

        blob_contents = sorted(
            base64.b64decode(body["content"])
            for _, path, body in fake_github.calls
            if path.endswith("/git/blobs")
        )
        assert b"# demo\n\nService with CI\n" in blob_contents
        assert b"\x89PNG\r\n\x1a\n\xff\xfe\x00" in blob_contents

        tree_body = next(
            body for _, path, body in fake_github.calls if path.endswith("/git/trees")
        )
        paths = sorted(entry["path"] for entry in tree_body["tree"])
        assert paths == [".github/workflows/ci.yml", "README.md", "assets/logo.bin", "src/main.py"]

    @pytest.mark.asyncio
    async def test_description_from_config(self, catalog, fake_github):
        async with fake_github.client() as client:
            await RepositoryProvisioner(client, catalog).provision(
                ProvisioningRequest(
                    project_name="demo",
                    template_id="basic-api",
                    config={"projectDescription": "custom"},
                )
            )

        assert fake_github.calls[0][2]["description"] == "custom"

    @pytest.mark.asyncio
    async def test_repository_exists(self, catalog, fake_github):
        fake_github.fail_on[("POST", "/user/repos")] = httpx.Response(
            422, json={"message": "Repository creation failed.",
                       "errors": [{"message": "name already exists on this account"}]}
        )

        async with fake_github.client() as client:
            with pytest.raises(RemoteConflictError) as exc_info:
                await RepositoryProvisioner(client, catalog).provision(
                    ProvisioningRequest(project_name="demo", template_id="basic-api")
                )

        assert exc_info.value.step == "create_repo"
        assert len(fake_github.calls) == 1

    @pytest.mark.asyncio
    async def test_blob_failure_stops_before_tree(self, rich_templates_root: Path, fake_github):
        fake_github.fail_on[("POST", "/git/blobs")] = httpx.Response(
            403, json={"message": "Resource not accessible by integration"}
        )
        catalog = TemplateCatalog(rich_templates_root)

        async with fake_github.client() as client:
            with pytest.raises(RemoteFailureError) as exc_info:
                await RepositoryProvisioner(client, catalog).provision(
                    ProvisioningRequest(project_name="demo", template_id="service")
                )

        assert exc_info.value.step == "create_blobs"
        sequence = step_sequence(fake_github.calls)
        assert "tree" not in sequence
        assert "commit" not in sequence
        assert "ref" not in sequence

    @pytest.mark.asyncio
    async def test_render_failure_after_repo_created(self, rich_templates_root: Path, fake_github):
        service_dir = rich_templates_root / "service"
        (service_dir / "src" / "main.py").write_text("{{ unknown }}", encoding="utf-8")
        catalog = TemplateCatalog(rich_templates_root)

        async with fake_github.client() as client:
            with pytest.raises(UnresolvedPlaceholderError) as exc_info:
                await RepositoryProvisioner(client, catalog).provision(
                    ProvisioningRequest(project_name="demo", template_id="service")
                )

        assert exc_info.value.step == "render_tree"
        assert step_sequence(fake_github.calls) == ["repo"]

    @pytest.mark.asyncio
    async def test_ref_failure_reports_step(self, catalog, fake_github):
        fake_github.fail_on[("PATCH", "/git/refs/heads/main")] = httpx.Response(
            422, json={"message": "Update is not a fast forward"}
        )

        async with fake_github.client() as client:
            with pytest.raises(RemoteFailureError) as exc_info:
                await RepositoryProvisioner(client, catalog).provision(
                    ProvisioningRequest(project_name="demo", template_id="basic-api")
                )

        error = exc_info.value
        assert error.step == "update_ref"
        assert error.to_dict()["step"] == "update_ref"
        assert error.code == ErrorCodes.REMOTE_ERROR

    @pytest.mark.asyncio
    async def test_malformed_response_is_remote_failure(self, catalog, fake_github):
        fake_github.fail_on[("POST", "/git/trees")] = httpx.Response(201, json={"no": "sha"})

        async with fake_github.client() as client:
            with pytest.raises(RemoteFailureError) as exc_info:
                await RepositoryProvisioner(client, catalog).provision(
                    ProvisioningRequest(project_name="demo", template_id="basic-api")
                )

        assert exc_info.value.step == "create_tree"

    @pytest.mark.asyncio
    async def test_non_json_response_is_remote_failure(self, catalog, fake_github):
        fake_github.fail_on[("POST", "/git/trees")] = httpx.Response(
            201, text="<html>upstream proxy</html>"
        )

        async with fake_github.client() as client:
            with pytest.raises(RemoteFailureError) as exc_info:
                await RepositoryProvisioner(client, catalog).provision(
                    ProvisioningRequest(project_name="demo", template_id="basic-api")
                )

        assert exc_info.value.step == "create_tree"
        assert exc_info.value.code == ErrorCodes.REMOTE_ERROR

    @pytest.mark.asyncio
    async def test_template_removed_after_catalog_fill(
        self, catalog, templates_root: Path, fake_github
    ):
        # 캐시된 템플릿의 디렉터리가 사라짐 → 빈 커밋 대신 render_tree 실패
        catalog.list_templates()
        shutil.rmtree(templates_root / "basic-api")

        async with fake_github.client() as client:
            with pytest.raises(IntegrityFailureError) as exc_info:
                await RepositoryProvisioner(client, catalog).provision(
                    ProvisioningRequest(project_name="demo", template_id="basic-api")
                )

        assert exc_info.value.step == "render_tree"
        assert exc_info.value.code == ErrorCodes.TEMPLATE_READ_FAILED
        assert step_sequence(fake_github.calls) == ["repo"]
