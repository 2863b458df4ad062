"""
Templates layer: 템플릿 카탈로그.

주의: 폴더 구분
- rainar/templates/ → 코드 (이 모듈)
- templates/ (루트) → 데이터 저장소 (<template-id>/rainar-template.yaml)
"""

from .catalog import (
    ManifestError,
    TemplateCache,
    TemplateCatalog,
    parse_manifest,
)

__all__ = [
    "TemplateCatalog",
    "TemplateCache",
    "ManifestError",
    "parse_manifest",
]
