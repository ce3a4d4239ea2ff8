from __future__ import annotations

import argparse
from datetime import date
import logging
from pathlib import Path
import sys

from .clock import Clock
from .db import WorkflowDB, default_db_path
from .durations import format_clock, format_duration, format_duration_hm
from .focus import focus_level
from .models import resolve_group_name
from .reporting import RANGE_PRESETS
from .service import WorkflowService
from .sessions import SessionNotFoundError, SessionStateError, TimerStatus
from .settings import default_settings_path, load_settings
from .timeline import ALL_GROUPS

logger = logging.getLogger(__name__)

DEFAULT_OUT_DIR = Path(__file__).resolve().parent / "out"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

STATUS_TEXT = {
    TimerStatus.IDLE: "대기",
    TimerStatus.RUNNING: "진행 중",
    TimerStatus.PAUSED: "휴식 중",
    TimerStatus.STOPPED: "중지됨",
}


def parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"날짜 형식 오류: {value} (YYYY-MM-DD 형식을 사용하세요)") from exc


def iso_weeks_in_year(year: int) -> int:
    return date(year, 12, 28).isocalendar()[1]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-timer",
        description="Workflow Timer: 작업 구간, 휴식, 집중 지수를 기록하는 오프라인 타이머",
    )
    parser.add_argument(
        "--db",
        default=str(default_db_path()),
        help="SQLite 데이터베이스 경로 (기본값: workflow_timer/data/workflow_timer.sqlite)",
    )
    parser.add_argument(
        "--settings",
        default=str(default_settings_path()),
        help="설정 파일 경로 (기본값: ~/.workflow_timer/settings.json)",
    )
    parser.add_argument("--log-level", default="WARNING", choices=LOG_LEVELS, help="로그 레벨")

    subparsers = parser.add_subparsers(dest="command", required=True)

    start_parser = subparsers.add_parser("start", help="작업 시작 또는 재개")
    start_parser.add_argument("--task", default="", help="작업 이름")
    start_parser.add_argument("--group", default=None, help="그룹 ID")

    subparsers.add_parser("pause", help="휴식 (일시 정지)")
    subparsers.add_parser("stop", help="완전 정지: 이후 공백은 휴식으로 계산하지 않음")

    finish_parser = subparsers.add_parser("finish", help="현재 작업 종료")
    finish_parser.add_argument("--hold", action="store_true", help="보류 상태로 종료")

    continue_parser = subparsers.add_parser("continue", help="기록된 작업 이어하기")
    continue_parser.add_argument("session_id", help="작업 ID")

    subparsers.add_parser("status", help="현재 타이머 상태")

    log_parser = subparsers.add_parser("log", help="작업 기록 보기")
    log_parser.add_argument("--date", type=parse_day, default=None, help="특정 날짜만 (YYYY-MM-DD)")
    log_parser.add_argument("--group", default=None, help="그룹 ID 또는 on-hold")
    log_parser.add_argument("--search", default="", help="작업 이름 검색어")

    timeline_parser = subparsers.add_parser("timeline", help="하루 타임라인 (최신순)")
    timeline_parser.add_argument("--date", type=parse_day, default=None, help="날짜 (기본값: 오늘)")
    timeline_parser.add_argument("--group", default=ALL_GROUPS, help="그룹 ID")

    stats_parser = subparsers.add_parser("stats", help="기간 통계")
    stats_parser.add_argument("--range", dest="preset", default="week", choices=RANGE_PRESETS, help="기간")
    stats_parser.add_argument("--start", type=parse_day, default=None, help="custom 시작일")
    stats_parser.add_argument("--end", type=parse_day, default=None, help="custom 종료일")
    stats_parser.add_argument("--group", default=None, help="그룹 ID")

    report_parser = subparsers.add_parser("report", help="주간 리포트 Markdown 생성")
    report_parser.add_argument("--year", type=int, default=None, help="ISO 연도")
    report_parser.add_argument("--week", type=int, default=None, help="ISO 주차")
    report_parser.add_argument(
        "--out-dir",
        default=str(DEFAULT_OUT_DIR),
        help="출력 디렉터리 (기본값: workflow_timer/out)",
    )

    trash_parser = subparsers.add_parser("trash", help="휴지통 관리")
    trash_sub = trash_parser.add_subparsers(dest="trash_command", required=True)
    trash_sub.add_parser("list", help="휴지통 목록")
    for name, text in (("add", "휴지통으로 이동"), ("restore", "복원"), ("purge", "영구 삭제")):
        item_parser = trash_sub.add_parser(name, help=text)
        item_parser.add_argument("session_id", help="작업 ID")
    trash_sub.add_parser("empty", help="휴지통 비우기")

    serve_parser = subparsers.add_parser("serve", help="HTTP API 서버 실행")
    serve_parser.add_argument("--host", default="127.0.0.1", help="바인드 주소")
    serve_parser.add_argument("--port", type=int, default=8765, help="포트")

    return parser


def main(argv: list[str] | None = None, clock: Clock | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    if args.command == "stats" and args.preset == "custom" and args.start is None:
        parser.error("--range custom 에는 --start 가 필요합니다")
    if args.command == "report" and args.year is not None and not 1 <= args.year <= 9999:
        parser.error("--year 는 1~9999 사이여야 합니다")
    if args.command == "report" and args.week is not None:
        if args.week < 1:
            parser.error("--week 는 1 이상이어야 합니다")
        if args.year is not None and args.week > iso_weeks_in_year(args.year):
            parser.error(f"{args.year}년은 {iso_weeks_in_year(args.year)}주까지만 있습니다")
        if args.year is None and args.week > 53:
            parser.error("--week 는 1~53 사이여야 합니다")

    settings = load_settings(Path(args.settings))
    if args.command == "serve":
        return _handle_serve(args)

    service = WorkflowService(WorkflowDB(Path(args.db)), clock=clock, settings=settings)
    handlers = {
        "start": _handle_start,
        "pause": _handle_pause,
        "stop": _handle_stop,
        "finish": _handle_finish,
        "continue": _handle_continue,
        "status": _handle_status,
        "log": _handle_log,
        "timeline": _handle_timeline,
        "stats": _handle_stats,
        "report": _handle_report,
        "trash": _handle_trash,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        return 2

    try:
        return handler(args, service)
    except (SessionStateError, SessionNotFoundError, IndexError) as exc:
        logger.debug("command %s failed", args.command, exc_info=True)
        print(f"오류: {exc}", file=sys.stderr)
        return 1


def _handle_start(args: argparse.Namespace, service: WorkflowService) -> int:
    state = service.start(name=args.task, group_id=args.group)
    print(f"작업 시작: {state.current.name} ({state.current.id})")
    return 0


def _handle_pause(args: argparse.Namespace, service: WorkflowService) -> int:
    state = service.pause()
    print(f"휴식 시작: {state.current.name}")
    return 0


def _handle_stop(args: argparse.Namespace, service: WorkflowService) -> int:
    service.stop()
    print("완전 정지되었습니다. 이후 공백은 휴식으로 계산되지 않습니다.")
    return 0


def _handle_finish(args: argparse.Namespace, service: WorkflowService) -> int:
    finished = service.finish(hold=args.hold)
    state_text = "보류" if finished.is_on_hold else "완료"
    print(f"작업 {state_text}: {finished.name} ({finished.id})")
    return 0


def _handle_continue(args: argparse.Namespace, service: WorkflowService) -> int:
    state = service.continue_session(args.session_id)
    print(f"작업 이어하기: {state.current.name} ({state.current.id})")
    return 0


def _handle_status(args: argparse.Namespace, service: WorkflowService) -> int:
    state = service.state()
    print(f"상태: {STATUS_TEXT[state.status]}")
    if state.current is not None:
        group_name = resolve_group_name(state.current.group_id, service.groups())
        print(f"작업: {state.current.name} [{group_name}]")
        print(f"경과: {format_duration(service.elapsed_ms())}")
    stats = service.day_stats()
    level = focus_level(stats.focus_index)
    print(f"오늘 작업: {format_duration_hm(stats.work_ms)} / 휴식: {format_duration_hm(stats.break_ms)}")
    print(f"오늘 집중 지수: {stats.focus_index} ({level.level} · {level.label})")
    return 0


def _handle_log(args: argparse.Namespace, service: WorkflowService) -> int:
    days = service.history(search=args.search, group_id=args.group, start=args.date, end=args.date)
    if not days:
        print("일치하는 기록이 없습니다.")
        return 0

    groups = service.groups()
    for day in days:
        print(f"[{day.day.isoformat()}] 작업 {format_duration_hm(day.total_ms)} / 휴식 {format_duration_hm(day.break_ms)}")
        for session in day.sessions:
            flags = " (보류)" if session.is_on_hold else ""
            print(
                f"  {session.id} | {format_clock(session.created_at)} | "
                f"{resolve_group_name(session.group_id, groups)} | {session.name}{flags}"
            )
    return 0


def _handle_timeline(args: argparse.Namespace, service: WorkflowService) -> int:
    slices = service.timeline(day=args.date, group_id=args.group)
    if not slices:
        print("타임라인 기록이 없습니다.")
        return 0

    for item in slices:
        marks = ""
        if item.is_ongoing:
            marks += " (진행 중)"
        if item.is_on_hold:
            marks += " (보류)"
        print(f"{format_clock(item.start)} - {format_clock(item.end)} | {item.duration} | {item.label}{marks}")
    return 0


def _handle_stats(args: argparse.Namespace, service: WorkflowService) -> int:
    try:
        stats = service.range_stats(args.preset, start=args.start, end=args.end, group_id=args.group)
    except ValueError as exc:
        print(f"오류: {exc}", file=sys.stderr)
        return 2

    summary = stats.summary
    level = focus_level(summary.avg_focus)
    print(f"[{stats.start.isoformat()} ~ {stats.end.isoformat()}]")
    print(f"총 작업 시간: {format_duration_hm(summary.work_ms)}")
    print(f"총 휴식 시간: {format_duration_hm(summary.break_ms)}")
    print(f"작업 수: {summary.session_count}개")
    print(f"휴식 횟수: {summary.break_count}회")
    print(f"평균 집중 지수: {summary.avg_focus} ({level.level} · {level.label})")
    print(f"작업한 날: {stats.active_days}일")
    if stats.active_days:
        print(f"하루 평균 작업: {format_duration_hm(stats.averages.work_ms)}")
    return 0


def _handle_report(args: argparse.Namespace, service: WorkflowService) -> int:
    try:
        report_path = service.weekly_report(Path(args.out_dir), year=args.year, week=args.week)
    except ValueError as exc:
        print(f"오류: {exc}", file=sys.stderr)
        return 2
    print(f"주간 리포트 생성 완료: {report_path}")
    return 0


def _handle_trash(args: argparse.Namespace, service: WorkflowService) -> int:
    command = args.trash_command
    if command == "list":
        items = service.trash()
        if not items:
            print("휴지통이 비어 있습니다.")
        for session in items:
            print(f"{session.id} | {format_clock(session.created_at)} | {session.name}")
        return 0
    if command == "add":
        session = service.trash_session(args.session_id)
        print(f"휴지통으로 이동: {session.name}")
        return 0
    if command == "restore":
        session = service.restore_session(args.session_id)
        print(f"복원 완료: {session.name}")
        return 0
    if command == "purge":
        service.purge_session(args.session_id)
        print(f"영구 삭제 완료: {args.session_id}")
        return 0
    if command == "empty":
        count = service.empty_trash()
        print(f"휴지통 비움: {count}개 삭제")
        return 0
    return 2


def _handle_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from .api.app import create_app

    app = create_app(db_path=Path(args.db), settings_path=Path(args.settings))
    logger.info("serving API on %s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
