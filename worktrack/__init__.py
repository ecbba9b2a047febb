"""worktrack: 프로젝트 → 모듈 → 태스크 작업 추적과 역할 기반 접근 제어."""

__version__ = "0.1.0"
