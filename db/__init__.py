from .db import (
    get_engine,
    get_session,
    create_all,
    dispose_engine,
    get_event,
    find_status,
    fetch_due_reminders,
    get_retry_count,
    mark_reminder_sent,
    reschedule_reminder,
    mark_reminder_failed,
    mark_reminder_skipped,
    purge_sent_reminders,
)  # noqa: F401
