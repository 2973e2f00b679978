from collections import defaultdict
from datetime import datetime, date, timedelta
from sqlalchemy.orm import Session
from blokt.models.models import Project, ProjectStatus, Task, TaskStatus, SafetyAlert, AlertSeverity

SEVERITY_ORDER = [AlertSeverity.LOW, AlertSeverity.MEDIUM, AlertSeverity.HIGH, AlertSeverity.CRITICAL]


def _pct(part: int, whole: int, empty: int = 0) -> int:
    return round(part / whole * 100) if whole else empty


def last_weekdays(today: date, count: int = 5) -> list[date]:
    days = []
    d = today
    while len(days) < count:
        if d.weekday() < 5:
            days.append(d)
        d -= timedelta(days=1)
    return list(reversed(days))


def _on_time(tasks: list[Task], now: datetime) -> int:
    due = [t for t in tasks if t.end is not None and t.end < now]
    return _pct(sum(1 for t in due if t.status == TaskStatus.COMPLETED), len(due), empty=100)


def _safety_rate(tasks: list[Task], flagged_task_ids: set) -> int:
    return _pct(sum(1 for t in tasks if t.id not in flagged_task_ids), len(tasks), empty=100)


def build_analytics(db: Session, org_id: str, now: datetime = None) -> dict:
    now = now or datetime.utcnow()
    projects = db.query(Project).filter(Project.organization_id == org_id).all()
    task_ids = {tid for p in projects for tid in (p.task_ids or [])}
    tasks = db.query(Task).filter(Task.id.in_(task_ids)).all() if task_ids else []
    tasks_by_id = {t.id: t for t in tasks}
    alerts = []
    if projects:
        alerts = db.query(SafetyAlert).filter(SafetyAlert.project_id.in_([p.id for p in projects])).all()
    flagged = {a.task_id for a in alerts if a.task_id and not a.acknowledged}

    alignment_data = []
    for day in last_weekdays(now.date()):
        planned = [t for t in tasks if t.end is not None and t.end.date() == day]
        completed = sum(1 for t in planned if t.status == TaskStatus.COMPLETED)
        alignment_data.append({
            "date": day.strftime("%a"),
            "planned": len(planned),
            "completed": completed,
            "score": _pct(completed, len(planned), empty=100),
        })
    scored = [d["score"] for d in alignment_data if d["planned"]]
    avg_alignment = round(sum(scored) / len(scored)) if scored else 0

    project_metrics = []
    for p in projects:
        p_tasks = [tasks_by_id[tid] for tid in (p.task_ids or []) if tid in tasks_by_id]
        project_metrics.append({
            "name": p.name,
            "alignment": _pct(sum(1 for t in p_tasks if t.status == TaskStatus.COMPLETED), len(p_tasks)),
            "efficiency": _on_time(p_tasks, now),
            "safety": _safety_rate(p_tasks, flagged),
        })

    by_trade = defaultdict(list)
    for t in tasks:
        by_trade[t.trade or "General"].append(t)
    trade_performance = []
    for trade, t_tasks in sorted(by_trade.items()):
        done = [t for t in t_tasks if t.status == TaskStatus.COMPLETED]
        late = sum(1 for t in t_tasks if t.status == TaskStatus.DELAYED)
        durations = [(t.end - t.start).total_seconds() / 86400 for t in done if t.start and t.end]
        trade_performance.append({
            "trade": trade,
            "tasks_completed": len(done),
            "avg_duration": round(sum(durations) / len(durations), 1) if durations else 0.0,
            "on_time_rate": _pct(len(done), len(done) + late, empty=100),
        })

    violations = defaultdict(list)
    for a in alerts:
        violations[a.violation_type].append(a.severity)
    safety_violations = [
        {"type": vtype, "count": len(sevs), "severity": max(sevs, key=SEVERITY_ORDER.index).value}
        for vtype, sevs in sorted(violations.items(), key=lambda kv: -len(kv[1]))
    ]

    active = [p for p in projects if p.status == ProjectStatus.ACTIVE]
    return {
        "avg_alignment": avg_alignment,
        "efficiency_score": _on_time(tasks, now),
        "safety_compliance": _safety_rate(tasks, flagged),
        "active_workers": len({uid for p in active for uid in (p.user_ids or [])}),
        "project_count": len(projects),
        "alignment_data": alignment_data,
        "project_metrics": project_metrics,
        "trade_performance": trade_performance,
        "safety_violations": safety_violations,
    }
