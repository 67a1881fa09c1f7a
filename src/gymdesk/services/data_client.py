"""Cached, change-aware facade over the remote data gateway."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, Iterable, Mapping, Optional

from ..domain.gateway import RemoteDataGateway
from ..logging_config import get_logger
from ..models.payment import PaymentStatus
from ..models.user import UserRole, UserStatus
from . import billing, community, reports
from .cache import DEFAULT_TTL_SECONDS, CacheKey, ResultCache
from .notifications import ChangeListener, ChangeNotificationBus

logger = get_logger(__name__)

USERS = "users"
PLANS = "plans"
PAYMENTS = "payments"
CLASSES = "classes"
ATTENDANCE = "attendance"
ASSESSMENTS = "assessments"
ROUTES = "routes"
WORKOUTS = "personalized_workouts"
POSTS = "posts"
CHALLENGES = "challenges"


class DataClient:
    """Entry point used by the views for every read and write.

    Reads go through the result cache and accept ``force=True`` to skip it.
    Writes go straight to the gateway and drop the dependent cache entries
    before returning. ``subscribe`` attaches to the shared change channel and
    is only available between ``open()`` and ``close()``.
    """

    def __init__(
        self,
        gateway: RemoteDataGateway,
        cache: Optional[ResultCache] = None,
        *,
        ttl: float = DEFAULT_TTL_SECONDS,
    ) -> None:
        self.gateway = gateway
        self.cache = cache if cache is not None else ResultCache(ttl=ttl)
        self.bus = ChangeNotificationBus(gateway, self.cache)
        self._is_open = False

    # ----------------------------------------------------------------- lifecycle

    @property
    def is_open(self) -> bool:
        return self._is_open

    def open(self) -> "DataClient":
        self._is_open = True
        return self

    def close(self) -> None:
        """Close the change channel, forget every listener and clear the cache."""
        self.bus.close()
        self.cache.invalidate_all()
        self._is_open = False

    def __enter__(self) -> "DataClient":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Call ``listener(collection)`` after every remote change."""
        if not self._is_open:
            raise RuntimeError("DataClient is not open")
        return self.bus.subscribe(listener)

    # ------------------------------------------------------------------- helpers

    def _invalidate(self, *collections: str) -> None:
        for collection in collections:
            self.cache.invalidate_collection(collection)

    def _one(self, collection: str, record_id: Any) -> Any:
        record = self.gateway.get_record(collection, record_id)
        if record is None:
            raise LookupError(f"{collection} record {record_id} not found")
        return record

    # --------------------------------------------------------------------- users

    def get_all_users(self, force: bool = False) -> list[Any]:
        return self.cache.fetch(
            CacheKey.all_users(),
            lambda: self.gateway.read_collection(USERS, order_by=["name"]),
            force=force,
        )

    def get_all_students(self, force: bool = False) -> list[Any]:
        return self.cache.fetch(
            CacheKey.students(),
            lambda: self.gateway.read_collection(
                USERS, {"role": UserRole.STUDENT.value}, order_by=["name"]
            ),
            force=force,
        )

    def add_user(self, fields: Mapping[str, Any]) -> Any:
        """Create a user; a student created with a plan gets its schedule."""
        payload = dict(fields)
        if payload.get("role", UserRole.STUDENT.value) == UserRole.STUDENT.value:
            payload.setdefault("profile_completed", False)
        user = self.gateway.insert_record(USERS, payload)
        self._invalidate(USERS)
        self._apply_plan_assignment(None, user)
        return user

    def update_user(self, user_id: Any, fields: Mapping[str, Any]) -> Any:
        """Save user fields and regenerate billing when the plan id changed."""
        # Read the id before writing: inside a gateway transaction the
        # previous and updated records are the same object.
        previous_plan_id = self._one(USERS, user_id).plan_id
        user = self.gateway.update_record(USERS, user_id, fields)
        self._invalidate(USERS)
        self._apply_plan_assignment(previous_plan_id, user)
        return user

    def _apply_plan_assignment(self, previous_plan_id: Any, user: Any) -> None:
        if not billing.plan_assignment_changed(previous_plan_id, user.plan_id):
            return
        if (user.plan_duration or 0) <= 0:
            return
        self.generate_billing_schedule(
            student_id=user.id,
            plan_value=user.plan_value,
            plan_discount=user.plan_discount,
            duration_months=user.plan_duration,
            start_date=user.plan_start_date,
        )

    def suspend_user(self, user_id: Any, *, today: Optional[date] = None) -> Any:
        return self.update_user(
            user_id,
            {"status": UserStatus.SUSPENDED.value, "suspended_at": today or date.today()},
        )

    def reactivate_user(self, user_id: Any) -> Any:
        return self.update_user(user_id, {"status": UserStatus.ACTIVE.value, "suspended_at": None})

    # --------------------------------------------------------------------- plans

    def get_plans(self, force: bool = False) -> list[Any]:
        return self.cache.fetch(
            CacheKey.plans(),
            lambda: self.gateway.read_collection(PLANS, order_by=["display_order", "title"]),
            force=force,
        )

    def add_plan(self, fields: Mapping[str, Any]) -> Any:
        plan = self.gateway.insert_record(PLANS, fields)
        self._invalidate(PLANS)
        return plan

    def assign_plan(
        self,
        student_id: Any,
        plan_id: Any,
        *,
        start_date: Optional[date] = None,
        discount: Optional[float] = None,
    ) -> Any:
        """Copy a catalogue plan onto a student and save it."""
        plan = self._one(PLANS, plan_id)
        return self.update_user(
            student_id,
            {
                "plan_id": plan.id,
                "plan_value": plan.price,
                "plan_discount": discount or 0.0,
                "plan_duration": plan.duration_months,
                "plan_start_date": start_date or date.today(),
            },
        )

    # ------------------------------------------------------------------ payments

    def get_payments(self, student_id: Any = None, force: bool = False) -> list[Any]:
        if student_id is None:
            key, filters = CacheKey.all_payments(), None
        else:
            key, filters = CacheKey.payments_for(student_id), {"student_id": student_id}
        return self.cache.fetch(
            key,
            lambda: self.gateway.read_collection(PAYMENTS, filters, order_by=["due_date"]),
            force=force,
        )

    def add_payment(self, fields: Mapping[str, Any]) -> Any:
        payload = {"status": PaymentStatus.PENDING.value, **fields}
        payment = self.gateway.insert_record(PAYMENTS, payload)
        self._invalidate(PAYMENTS)
        return payment

    def update_payment_status(self, payment_id: Any, status: str | PaymentStatus) -> Any:
        status = PaymentStatus(status)
        payment = self.gateway.update_record(PAYMENTS, payment_id, {"status": status.value})
        self._invalidate(PAYMENTS)
        return payment

    def mark_payment_as_paid(self, payment_id: Any) -> Any:
        return self.update_payment_status(payment_id, PaymentStatus.PAID)

    def delete_payment(self, payment_id: Any) -> None:
        self.gateway.delete_record(PAYMENTS, payment_id)
        self._invalidate(PAYMENTS)

    def mark_overdue_payments(self, today: Optional[date] = None) -> int:
        """Flag PENDING payments due before ``today`` as OVERDUE."""
        today = today or date.today()
        with self.gateway.transaction():
            late = self.gateway.read_collection(
                PAYMENTS, {"status": PaymentStatus.PENDING.value, "due_date__lt": today}
            )
            for payment in late:
                self.gateway.update_record(
                    PAYMENTS, payment.id, {"status": PaymentStatus.OVERDUE.value}
                )
        if late:
            self._invalidate(PAYMENTS)
            logger.info("Marked payments overdue", extra={"count": len(late), "as_of": today})
        return len(late)

    def generate_billing_schedule(
        self,
        student_id: Any,
        plan_value: Optional[float],
        plan_discount: Optional[float],
        duration_months: Optional[int],
        start_date: date | datetime | None = None,
    ) -> list[Any]:
        """Replace the student's pending installments with a new schedule."""
        created = billing.generate_billing_schedule(
            self.gateway,
            student_id=student_id,
            plan_value=plan_value,
            plan_discount=plan_discount,
            duration_months=duration_months,
            start_date=start_date,
        )
        if created:
            self._invalidate(PAYMENTS)
        return created

    def get_payment_totals(self, student_id: Any = None, force: bool = False) -> dict[str, float]:
        """Amount owed, settled and overdue, for one student or the whole studio."""
        return self.cache.fetch(
            CacheKey.payment_totals(student_id),
            lambda: reports.payment_totals(self.get_payments(student_id, force=force)),
            force=force,
        )

    # ------------------------------------------------------------------- classes

    def get_classes(self, force: bool = False) -> list[Any]:
        return self.cache.fetch(
            CacheKey.classes(),
            lambda: self.gateway.read_collection(CLASSES, order_by=["day_of_week", "start_time"]),
            force=force,
        )

    def add_class(self, fields: Mapping[str, Any]) -> Any:
        class_session = self.gateway.insert_record(CLASSES, fields)
        self._invalidate(CLASSES)
        return class_session

    def update_class(self, class_id: Any, fields: Mapping[str, Any]) -> Any:
        class_session = self.gateway.update_record(CLASSES, class_id, fields)
        self._invalidate(CLASSES)
        return class_session

    def delete_class(self, class_id: Any) -> None:
        self.gateway.delete_record(CLASSES, class_id)
        self._invalidate(CLASSES)

    def _get_class(self, class_id: Any) -> Any:
        class_session = self.gateway.get_record(CLASSES, class_id)
        if class_session is None:
            raise ValueError("Class not found.")
        return class_session

    def enroll_student(self, class_id: Any, student_id: Any) -> Any:
        """Add a student to a class, taking them off its waitlist."""
        with self.gateway.transaction():
            class_session = self._get_class(class_id)
            enrolled = list(class_session.enrolled_student_ids or [])
            if student_id in enrolled:
                raise ValueError("Student already enrolled.")
            if len(enrolled) >= class_session.max_capacity:
                raise ValueError("Class is at full capacity.")
            waitlist = [sid for sid in class_session.waitlist_student_ids or [] if sid != student_id]
            updated = self.gateway.update_record(
                CLASSES,
                class_id,
                {"enrolled_student_ids": enrolled + [student_id], "waitlist_student_ids": waitlist},
            )
        self._invalidate(CLASSES)
        return updated

    def remove_student_from_class(self, class_id: Any, student_id: Any) -> Any:
        with self.gateway.transaction():
            class_session = self._get_class(class_id)
            enrolled = list(class_session.enrolled_student_ids or [])
            if student_id not in enrolled:
                raise ValueError("Student is not enrolled in this class.")
            updated = self.gateway.update_record(
                CLASSES,
                class_id,
                {"enrolled_student_ids": [sid for sid in enrolled if sid != student_id]},
            )
        self._invalidate(CLASSES)
        return updated

    def join_waitlist(self, class_id: Any, student_id: Any) -> Any:
        with self.gateway.transaction():
            class_session = self._get_class(class_id)
            waitlist = list(class_session.waitlist_student_ids or [])
            if student_id in waitlist:
                raise ValueError("Student already on the waitlist.")
            updated = self.gateway.update_record(
                CLASSES, class_id, {"waitlist_student_ids": waitlist + [student_id]}
            )
        self._invalidate(CLASSES)
        return updated

    def leave_waitlist(self, class_id: Any, student_id: Any) -> Any:
        with self.gateway.transaction():
            class_session = self._get_class(class_id)
            waitlist = list(class_session.waitlist_student_ids or [])
            if student_id not in waitlist:
                raise ValueError("Student is not on the waitlist.")
            updated = self.gateway.update_record(
                CLASSES,
                class_id,
                {"waitlist_student_ids": [sid for sid in waitlist if sid != student_id]},
            )
        self._invalidate(CLASSES)
        return updated

    # ---------------------------------------------------------------- attendance

    def save_attendance(self, class_id: Any, day: date, present_ids: Iterable[Any]) -> list[Any]:
        """Replace the attendance sheet of ``class_id`` for ``day``."""
        rows = [
            {"class_id": class_id, "student_id": sid, "date": day, "is_present": True}
            for sid in dict.fromkeys(present_ids)
        ]
        with self.gateway.transaction():
            self.gateway.delete_where(ATTENDANCE, {"class_id": class_id, "date": day})
            records = self.gateway.insert_many_records(ATTENDANCE, rows)
        self._invalidate(ATTENDANCE)
        return records

    def get_class_attendance(self, class_id: Any, day: date) -> list[Any]:
        return self.gateway.read_collection(ATTENDANCE, {"class_id": class_id, "date": day})

    def has_attendance(self, class_id: Any, day: date) -> bool:
        return bool(self.get_class_attendance(class_id, day))

    def get_student_attendance_stats(
        self, student_id: Any, force: bool = False
    ) -> reports.AttendanceStats:
        def load() -> reports.AttendanceStats:
            return reports.attendance_stats(
                classes=self.gateway.read_collection(CLASSES),
                records=self.gateway.read_collection(
                    ATTENDANCE, {"student_id": student_id, "is_present": True}
                ),
                student_id=student_id,
            )

        return self.cache.fetch(CacheKey.attendance_stats(student_id), load, force=force)

    # --------------------------------------------------------------- assessments

    def get_assessments(self, student_id: Any = None, force: bool = False) -> list[Any]:
        if student_id is None:
            key, filters = CacheKey.all_assessments(), None
        else:
            key, filters = CacheKey.assessments_for(student_id), {"student_id": student_id}
        return self.cache.fetch(
            key,
            lambda: self.gateway.read_collection(ASSESSMENTS, filters, order_by=["-date"]),
            force=force,
        )

    def add_assessment(self, fields: Mapping[str, Any]) -> Any:
        assessment = self.gateway.insert_record(ASSESSMENTS, fields)
        self._invalidate(ASSESSMENTS)
        return assessment

    def update_assessment(self, assessment_id: Any, fields: Mapping[str, Any]) -> Any:
        assessment = self.gateway.update_record(ASSESSMENTS, assessment_id, fields)
        self._invalidate(ASSESSMENTS)
        return assessment

    def delete_assessment(self, assessment_id: Any) -> None:
        self.gateway.delete_record(ASSESSMENTS, assessment_id)
        self._invalidate(ASSESSMENTS)

    # -------------------------------------------------------------------- routes

    def get_routes(self, force: bool = False) -> list[Any]:
        return self.cache.fetch(
            CacheKey.routes(),
            lambda: self.gateway.read_collection(ROUTES, order_by=["title"]),
            force=force,
        )

    def add_route(self, fields: Mapping[str, Any]) -> Any:
        route = self.gateway.insert_record(ROUTES, fields)
        self._invalidate(ROUTES)
        return route

    def update_route(self, route_id: Any, fields: Mapping[str, Any]) -> Any:
        route = self.gateway.update_record(ROUTES, route_id, fields)
        self._invalidate(ROUTES)
        return route

    def delete_route(self, route_id: Any) -> None:
        self.gateway.delete_record(ROUTES, route_id)
        self._invalidate(ROUTES)

    # ------------------------------------------------------------------ workouts

    def get_personalized_workouts(self, student_id: Any = None, force: bool = False) -> list[Any]:
        """Workouts newest first; with ``student_id``, only those shared with them."""

        def load() -> list[Any]:
            workouts = self.gateway.read_collection(WORKOUTS, order_by=["-created_at"])
            if student_id is None:
                return workouts
            return [w for w in workouts if student_id in (w.student_ids or [])]

        return self.cache.fetch(CacheKey.workouts(student_id), load, force=force)

    def add_personalized_workout(self, fields: Mapping[str, Any]) -> Any:
        workout = self.gateway.insert_record(WORKOUTS, fields)
        self._invalidate(WORKOUTS)
        return workout

    def update_personalized_workout(self, workout_id: Any, fields: Mapping[str, Any]) -> Any:
        workout = self.gateway.update_record(WORKOUTS, workout_id, fields)
        self._invalidate(WORKOUTS)
        return workout

    def delete_personalized_workout(self, workout_id: Any) -> None:
        self.gateway.delete_record(WORKOUTS, workout_id)
        self._invalidate(WORKOUTS)

    # ---------------------------------------------------------------------- feed

    def get_posts(self, force: bool = False) -> list[community.FeedPost]:
        """Feed posts newest first, with author name and avatar."""
        return self.cache.fetch(
            CacheKey.posts(),
            lambda: community.feed_posts(
                posts=self.gateway.read_collection(POSTS, order_by=["-timestamp"]),
                users=self.gateway.read_collection(USERS),
            ),
            force=force,
        )

    def add_post(
        self,
        user_id: Any,
        *,
        image_url: str = "",
        caption: str = "",
        timestamp: Optional[datetime] = None,
    ) -> community.FeedPost:
        author = self._one(USERS, user_id)
        post = self.gateway.insert_record(
            POSTS,
            {
                "user_id": user_id,
                "image_url": image_url,
                "caption": caption,
                "likes": [],
                "timestamp": timestamp or datetime.now(),
            },
        )
        self._invalidate(POSTS)
        return community.FeedPost(post=post, user_name=author.name, user_avatar=author.avatar_url)

    def add_like_to_post(self, post_id: Any, user_id: Any) -> community.FeedPost:
        """Like ``post_id`` as ``user_id``; a second call removes the like."""
        with self.gateway.transaction():
            post = self.gateway.get_record(POSTS, post_id)
            if post is None:
                raise LookupError("Post not found.")
            post = self.gateway.update_record(
                POSTS, post_id, {"likes": community.toggle_like(post.likes, user_id)}
            )
            author = self._one(USERS, post.user_id)
        self._invalidate(POSTS)
        return community.FeedPost(post=post, user_name=author.name, user_avatar=author.avatar_url)

    # ----------------------------------------------------------------- challenge

    def get_challenge_progress(
        self, today: Optional[date] = None, force: bool = False
    ) -> community.ChallengeProgress:
        """Progress of the studio challenge, seeding the default one if none exists."""
        today = today or date.today()

        def load() -> community.ChallengeProgress:
            with self.gateway.transaction():
                challenges = self.gateway.read_collection(CHALLENGES, order_by=["id"])
                if challenges:
                    challenge = challenges[0]
                else:
                    challenge = self.gateway.insert_record(
                        CHALLENGES, community.DEFAULT_CHALLENGE
                    )
                    logger.info("Default challenge created", extra={"challenge_id": challenge.id})
            return community.challenge_progress(challenge, today=today)

        return self.cache.fetch(CacheKey.challenge_progress(today), load, force=force)

    # ------------------------------------------------------------------- reports

    def get_financial_report(self, year: int, force: bool = False) -> list[reports.MonthlyRevenue]:
        def load() -> list[reports.MonthlyRevenue]:
            paid = self.gateway.read_collection(
                PAYMENTS,
                {
                    "status": PaymentStatus.PAID.value,
                    "due_date__gte": date(year, 1, 1),
                    "due_date__lte": date(year, 12, 31),
                },
            )
            return reports.financial_report(payments=paid, year=year)

        return self.cache.fetch(CacheKey.financial_report(year), load, force=force)

    def get_attendance_report(self, force: bool = False) -> list[reports.WeekdayAttendance]:
        return self.cache.fetch(
            CacheKey.attendance_report(),
            lambda: reports.attendance_report(
                records=self.gateway.read_collection(ATTENDANCE, {"is_present": True})
            ),
            force=force,
        )


__all__ = ["DataClient"]
