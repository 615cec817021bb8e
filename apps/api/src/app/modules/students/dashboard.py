"""
Signup Dashboard Pipeline

In-memory filtering, search, sorting and paging over the full signup table.

The admin dashboard fetches every signup and narrows it here rather than in
SQL. This holds up to roughly 10k signups.

Each filter is an independent predicate and they are combined with AND, so
the order filters are applied in never changes the result.
"""

from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, date, datetime, time, timedelta
from math import ceil
from typing import Any

from app.modules.students.models import ClassType, SignupStatus
from app.modules.students.schemas import (
    DashboardQuery,
    ReminderStatus,
    SignupListResponse,
    SignupResponse,
)

Predicate = Callable[[SignupResponse], bool]

DEFAULT_SORT_FIELD = "created_at"
DEFAULT_SORT_ORDER = "desc"
DEFAULT_PAGE_SIZE = 10

# Sort keys that live on the student rather than the signup
_STUDENT_FIELDS = {"email", "phone"}


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


# ============================================
# Predicates
# ============================================


def by_class_type(class_type: ClassType) -> Predicate:
    return lambda signup: signup.class_type == class_type


def by_status(status: SignupStatus) -> Predicate:
    return lambda signup: signup.status == status


def by_created_range(date_from: date | None, date_to: date | None) -> Predicate:
    """
    Signups created within [date_from, date_to], both days inclusive (UTC).
    """
    start = datetime.combine(date_from, time.min, tzinfo=UTC) if date_from else None
    end = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=UTC) if date_to else None

    def predicate(signup: SignupResponse) -> bool:
        created = _as_utc(signup.created_at)
        if start and created < start:
            return False
        if end and created >= end:
            return False
        return True

    return predicate


def by_reminder_status(reminder_status: ReminderStatus) -> Predicate:
    """
    sent: a reminder went out; pending: none sent yet; failed: status FAILED.
    """
    if reminder_status == "sent":
        return lambda signup: signup.reminder_sent_at is not None
    if reminder_status == "pending":
        return lambda signup: signup.reminder_sent_at is None
    return lambda signup: signup.status == SignupStatus.FAILED


def by_search(text: str) -> Predicate:
    """Case-insensitive substring match on email, phone, training type or status."""
    needle = text.strip().lower()

    def predicate(signup: SignupResponse) -> bool:
        student = signup.student
        haystacks = (
            (student.email if student else None) or "",
            (student.phone if student else None) or "",
            signup.class_type.value,
            signup.status.value,
        )
        return any(needle in value.lower() for value in haystacks)

    return predicate


def build_predicates(query: DashboardQuery) -> list[Predicate]:
    """One predicate per filter present in ``query``."""
    predicates: list[Predicate] = []
    if query.class_type:
        predicates.append(by_class_type(query.class_type))
    if query.status:
        predicates.append(by_status(query.status))
    if query.date_from or query.date_to:
        predicates.append(by_created_range(query.date_from, query.date_to))
    if query.reminder_status:
        predicates.append(by_reminder_status(query.reminder_status))
    if query.search and query.search.strip():
        predicates.append(by_search(query.search))
    return predicates


def apply_filters(
    signups: Iterable[SignupResponse], predicates: Sequence[Predicate]
) -> list[SignupResponse]:
    """Keep the signups every predicate accepts."""
    return [signup for signup in signups if all(p(signup) for p in predicates)]


# ============================================
# Sorting and paging
# ============================================


def _sort_value(signup: SignupResponse, field: str) -> Any:
    if field in _STUDENT_FIELDS:
        return getattr(signup.student, field, None) if signup.student else None

    value = getattr(signup, field, None)
    if isinstance(value, ClassType | SignupStatus):
        return value.value
    if isinstance(value, datetime):
        return _as_utc(value)
    return value


def sort_signups(
    signups: Iterable[SignupResponse],
    field: str = DEFAULT_SORT_FIELD,
    order: str = DEFAULT_SORT_ORDER,
) -> list[SignupResponse]:
    """
    Stable sort on ``field``. Missing values always sort last, in either order.
    """
    present, missing = [], []
    for signup in signups:
        (missing if _sort_value(signup, field) is None else present).append(signup)

    present.sort(key=lambda s: _sort_value(s, field), reverse=order == "desc")
    return present + missing


def paginate(items: Sequence[Any], page: int, page_size: int) -> tuple[list[Any], int]:
    """
    Slice one page.

    Returns:
        (items on the page, total number of pages); pages past the end are empty
    """
    total_pages = max(1, ceil(len(items) / page_size))
    start = (page - 1) * page_size
    return list(items[start : start + page_size]), total_pages


def run_pipeline(signups: Sequence[SignupResponse], query: DashboardQuery) -> SignupListResponse:
    """
    Filter, search, sort and page the full signup table.

    With an empty query the table is returned exactly as fetched.
    """
    if query.is_empty():
        return SignupListResponse(
            signups=list(signups),
            total=len(signups),
            page=1,
            page_size=len(signups),
            total_pages=1,
            filtered=False,
        )

    matched = apply_filters(signups, build_predicates(query))
    ordered = sort_signups(
        matched,
        query.sort_by or DEFAULT_SORT_FIELD,
        query.sort_order or DEFAULT_SORT_ORDER,
    )

    page = query.page or 1
    page_size = query.page_size or DEFAULT_PAGE_SIZE
    page_items, total_pages = paginate(ordered, page, page_size)

    return SignupListResponse(
        signups=page_items,
        total=len(ordered),
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        filtered=True,
    )
