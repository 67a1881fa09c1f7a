"""SQLModel table exports."""

from .assessment import Assessment, AssessmentStatus
from .attendance import AttendanceRecord
from .challenge import Challenge
from .class_session import ClassSession, ClassType
from .payment import Payment, PaymentStatus
from .plan import Plan, PlanType
from .post import Post
from .route import Route, RouteDifficulty
from .user import User, UserRole, UserStatus
from .workout import PersonalizedWorkout

# Collection name -> table model; collection names match the table names.
COLLECTIONS = {
    "users": User,
    "plans": Plan,
    "payments": Payment,
    "classes": ClassSession,
    "attendance": AttendanceRecord,
    "assessments": Assessment,
    "routes": Route,
    "personalized_workouts": PersonalizedWorkout,
    "posts": Post,
    "challenges": Challenge,
}

__all__ = [
    "Assessment",
    "AssessmentStatus",
    "AttendanceRecord",
    "Challenge",
    "ClassSession",
    "ClassType",
    "COLLECTIONS",
    "Payment",
    "PaymentStatus",
    "PersonalizedWorkout",
    "Plan",
    "PlanType",
    "Post",
    "Route",
    "RouteDifficulty",
    "User",
    "UserRole",
    "UserStatus",
]
