"""
Render layer: 템플릿 트리 → 출력.

역할:
- {{ variable }} 치환 (variables.py)
- 결정적 순서 트리 순회 (tree.py)
- 스트리밍 ZIP 생성 (archive.py)
"""

from .archive import archive_filename, content_disposition, iter_archive
from .tree import iter_template_files, iter_template_paths, walk_template
from .variables import build_variables, detect_placeholders, render_bytes, render_text

__all__ = [
    # variables
    "build_variables",
    "detect_placeholders",
    "render_text",
    "render_bytes",
    # tree
    "iter_template_paths",
    "iter_template_files",
    "walk_template",
    # archive
    "archive_filename",
    "content_disposition",
    "iter_archive",
]
