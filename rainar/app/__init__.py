"""
App layer: API 서버 (FastAPI).

역할:
- 템플릿 목록, ZIP 다운로드, 저장소 생성/secret/workflow 요청 처리
- 검증/렌더/원격 호출은 service → 하위 계층에 위임

주의: 폴더 구분
- rainar/templates/ → 코드 (catalog.py)
- templates/ (루트) → 템플릿 데이터 저장소
"""
