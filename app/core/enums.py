from enum import Enum


class PersonKind(str, Enum):
    CHILD = "child"
    STAFF = "staff"


class DayCategory(str, Enum):
    INVITED = "invited"
    CANCELLED = "cancelled"
    EXTRA = "extra"
    ENROLLMENT = "enrollment"
    NONE = "none"


class ExtraRequestStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
