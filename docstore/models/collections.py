"""
Collections used by the court case-management application.

The store provisions any valid name on first use; these constants only keep
call sites consistent and tell the migrate command which tables and field
indexes to create up front.
"""

from typing import Dict, List, Tuple

USERS = "users"
CASES = "cases"
HEARINGS = "hearings"
DOCUMENTS = "documents"
RULINGS = "rulings"
ROLES = "roles"
COURTS = "courts"
AUDIT_LOGS = "audit_logs"
LAW_FIRMS = "lawFirms"
CALENDAR_EVENTS = "calendarEvents"
NOTIFICATIONS = "notifications"
CALENDAR = "calendar"
SEQUENCES = "sequences"
STATS = "stats"
JUDGES = "judges"
AI_QUERIES = "aiQueries"
PARLIAMENT_UPDATES = "parliamentUpdates"
CASE_STATUS_HISTORY = "case_status_history"
CASE_PROCESS_STAGES = "case_process_stages"
CASE_EVENTS = "case_events"

COLLECTIONS: Tuple[str, ...] = (
    USERS,
    CASES,
    HEARINGS,
    DOCUMENTS,
    RULINGS,
    ROLES,
    COURTS,
    AUDIT_LOGS,
    LAW_FIRMS,
    CALENDAR_EVENTS,
    NOTIFICATIONS,
    CALENDAR,
    SEQUENCES,
    STATS,
    JUDGES,
    AI_QUERIES,
    PARLIAMENT_UPDATES,
    CASE_STATUS_HISTORY,
    CASE_PROCESS_STAGES,
    CASE_EVENTS,
)

# Expression indexes created by `manage_db.py migrate`; each entry is one index.
FIELD_INDEXES: Dict[str, List[Tuple[str, ...]]] = {
    CASES: [("status",), ("type",), ("priority",), ("assignedTo",), ("createdBy",)],
    USERS: [("email",), ("role",), ("isActive",)],
    HEARINGS: [("caseId",), ("judgeId",), ("date",), ("status",)],
    DOCUMENTS: [("caseId",), ("type",), ("status",), ("uploadedBy",)],
    AUDIT_LOGS: [("actorId",), ("entityType", "entityId"), ("action",), ("timestamp",)],
    NOTIFICATIONS: [("recipientUserId",), ("readAt",)],
    LAW_FIRMS: [("isActive",)],
    CALENDAR_EVENTS: [("caseId",), ("judgeId",), ("start",)],
}
