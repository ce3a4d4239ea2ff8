"""Workflow Timer: 작업 구간과 휴식을 기록하고 집중 지수를 계산하는 오프라인 타이머."""

from .cli import main

__version__ = "0.1.0"

__all__ = ["main", "__version__"]
