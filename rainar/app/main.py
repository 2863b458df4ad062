"""
FastAPI 애플리케이션 진입점.

실행:
- 개발: uvicorn rainar.app.main:app --reload
- 프로덕션: uvicorn rainar.app.main:app
"""

import logging
import time
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import yaml
from fastapi import FastAPI, Request, Response

# Routes
from rainar.app.routes import projects, repositories, templates
from rainar.app.service import build_service

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent.parent

# =============================================================================
# Configuration
# =============================================================================


def load_config(config_path: Path | None = None) -> dict:
    """설정 파일 로드."""
    if config_path is None:
        # 프로젝트 루트의 default.yaml
        config_path = PROJECT_ROOT / "default.yaml"

    if not config_path.exists():
        return {}

    with open(config_path, encoding="utf-8") as f:
        data: dict[Any, Any] = yaml.safe_load(f) or {}
        return data


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    애플리케이션 생명주기 관리.

    시작 시: 설정 로드, 서비스 구성, 템플릿 카탈로그 선로딩
    (templates root를 읽을 수 없으면 기동 실패)
    종료 시: 리소스 정리
    """
    # Startup
    app.state.config = load_config()
    app.state.service = build_service(app.state.config, PROJECT_ROOT)

    loaded = app.state.service.list_templates()
    logger.info(f"Template catalog ready: {len(loaded)} template(s)")

    yield

    # Shutdown
    # (GitHub 클라이언트는 요청 단위로 닫힘)


# =============================================================================
# App Instance
# =============================================================================

app = FastAPI(
    title="Rainar Project Provisioning",
    description="템플릿 → 프로젝트 ZIP 다운로드 / GitHub 저장소 생성",
    version="0.1.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def log_requests(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """요청 로그 (method, path, client IP, user agent, status, 소요 시간)."""
    started = time.perf_counter()
    client_ip = request.client.host if request.client else "-"
    user_agent = request.headers.get("user-agent", "-")

    response = await call_next(request)

    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        f"{request.method} {request.url.path} from {client_ip} ({user_agent}) "
        f"-> {response.status_code} ({elapsed_ms:.1f}ms)"
    )
    return response


# =============================================================================
# Routes
# =============================================================================

app.include_router(
    templates.api_router, prefix="/api/templates", tags=["Templates API"]
)
app.include_router(projects.api_router, prefix="/api/projects", tags=["Projects API"])
app.include_router(
    repositories.api_router, prefix="/api/repositories", tags=["Repositories API"]
)


# =============================================================================
# Root Endpoints
# =============================================================================


@app.get("/")
async def root() -> dict[str, Any]:
    """엔드포인트 안내."""
    return {
        "message": "Rainar Project Provisioning",
        "endpoints": {
            "templates": "/api/templates",
            "archive": "/api/projects/archive",
            "repositories": "/api/repositories",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    """헬스 체크."""
    return {"status": "ok"}


# =============================================================================
# CLI Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "rainar.app.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
