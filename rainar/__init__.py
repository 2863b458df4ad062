"""
Rainar: 템플릿 기반 프로젝트 프로비저닝.

템플릿 디렉터리 + 변수 → ZIP 다운로드 또는 GitHub 저장소 초기화.
"""

__version__ = "0.1.0"
