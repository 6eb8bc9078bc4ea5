#!/usr/bin/env python3
"""
Admin tools for ExamGuard.

Runs against the same database as the API. Exams closed from here are not
pushed to connected clients (the realtime hub lives in the API process);
their next violation report is rejected instead.
"""

import os
import sys
import argparse
import asyncio
from typing import Optional

sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from examguard.core.database import AsyncSessionLocal, create_db_and_tables
from examguard.core.exceptions import ExamGuardError
from examguard.services.session_store import SessionStore
from examguard.services.session_lifecycle import SessionLifecycleManager, is_lockout
from examguard.utils.timezone import format_display_time, utc_now


async def create_exam(title: str, duration: int, description: Optional[str]) -> bool:
    await create_db_and_tables()
    async with AsyncSessionLocal() as db:
        exam = await SessionStore(db).create_exam_session(
            title=title,
            description=description,
            duration=duration,
        )
    print("✅ Exam created")
    print(f"   ID: {exam.id}")
    print(f"   Title: {exam.title}")
    print(f"   Duration: {exam.duration} min")
    return True


async def list_exams(active_only: bool) -> bool:
    async with AsyncSessionLocal() as db:
        store = SessionStore(db)
        exams = await (store.list_active_exam_sessions() if active_only else store.list_exam_sessions())

    if not exams:
        print("No exams found")
        return True

    print(f"{'ID':<38} {'Title':<30} {'Active':<7} Started")
    print("-" * 100)
    for exam in exams:
        print(f"{exam.id:<38} {exam.title[:30]:<30} {str(exam.is_active):<7} {format_display_time(exam.started_at)}")
    return True


async def close_exam(exam_session_id: str) -> bool:
    async with AsyncSessionLocal() as db:
        store = SessionStore(db)
        exam = await store.get_exam_session(exam_session_id)
        if not exam:
            print(f"❌ Exam {exam_session_id} not found")
            return False
        if not exam.is_active:
            print(f"Exam {exam_session_id} is already closed")
            return True

        await store.update_exam_session(exam_session_id, {"is_active": False, "ended_at": utc_now()})
        closed_ids = await SessionLifecycleManager(store).close_exam(exam_session_id)

    print(f"✅ Exam closed, {len(closed_ids)} active student sessions ended")
    return True


async def show_active_sessions(exam_session_id: Optional[str]) -> bool:
    async with AsyncSessionLocal() as db:
        sessions = await SessionStore(db).list_active_student_sessions()

    if exam_session_id:
        sessions = [s for s in sessions if s.exam_session_id == exam_session_id]

    if not sessions:
        print("No active student sessions")
        return True

    for session in sessions:
        print(f"{session.id}  {session.student.email:<30} {session.exam_session.title[:25]:<25} warnings={session.warning_count}")
    return True


async def show_violations(student_session_id: Optional[str]) -> bool:
    async with AsyncSessionLocal() as db:
        store = SessionStore(db)
        if student_session_id:
            session = await store.get_student_session_details(student_session_id)
            if not session:
                print(f"❌ Student session {student_session_id} not found")
                return False
            status = "LOCKED OUT" if is_lockout(session) else ("active" if session.is_active else "closed")
            print(f"Student: {session.student.name} <{session.student.email}>")
            print(f"Exam: {session.exam_session.title}")
            print(f"Warnings: {session.warning_count} ({status})")
            violations = session.violations
        else:
            violations = await store.list_violations()

    print(f"Total violations: {len(violations)}")
    for violation in violations:
        print(f"  {format_display_time(violation.timestamp)}  {violation.type:<20} {violation.details or ''}")
    return True


def main():
    parser = argparse.ArgumentParser(description="ExamGuard admin tools")
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    create_exam_parser = subparsers.add_parser('create-exam', help='Create an exam session')
    create_exam_parser.add_argument('--title', required=True, help='Exam title')
    create_exam_parser.add_argument('--duration', type=int, required=True, help='Duration in minutes')
    create_exam_parser.add_argument('--description', help='Optional description')

    list_exams_parser = subparsers.add_parser('list-exams', help='List exam sessions')
    list_exams_parser.add_argument('--active', action='store_true', help='Only active exams')

    close_exam_parser = subparsers.add_parser('close-exam', help='Close an exam and end its student sessions')
    close_exam_parser.add_argument('--exam-id', required=True, help='Exam session ID')

    active_parser = subparsers.add_parser('active-sessions', help='Show active student sessions')
    active_parser.add_argument('--exam-id', help='Exam session ID')

    violations_parser = subparsers.add_parser('violations', help='Violation report')
    violations_parser.add_argument('--student-session-id', help='Student session ID')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    if args.command == 'create-exam':
        command = create_exam(args.title, args.duration, args.description)
    elif args.command == 'list-exams':
        command = list_exams(args.active)
    elif args.command == 'close-exam':
        command = close_exam(args.exam_id)
    elif args.command == 'active-sessions':
        command = show_active_sessions(args.exam_id)
    else:
        command = show_violations(args.student_session_id)

    try:
        ok = asyncio.run(command)
    except ExamGuardError as e:
        print(f"❌ {e.message}")
        ok = False
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
