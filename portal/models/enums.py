from enum import Enum


class UserRole(str, Enum):
    LEADER = "leader"
    MEMBER = "member"
    SPOC = "spoc"
    ADMIN = "admin"
    JURY = "jury"


# Роли, которые не удаляются массовым удалением
PROTECTED_ROLES = (UserRole.ADMIN, UserRole.SPOC)


class SpocStatus(str, Enum):
    PENDING = "pending"  # Заявка ожидает решения администратора
    APPROVED = "approved"


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class TeamCategory(str, Enum):
    SOFTWARE = "Software"
    HARDWARE = "Hardware"


class ProblemStatementCategory(str, Enum):
    SOFTWARE = "Software"
    HARDWARE = "Hardware"
    HARDWARE_AND_SOFTWARE = "Hardware & Software"


class SihSelectionStatus(str, Enum):
    INSTITUTE = "institute"
    UNIVERSITY = "university"


class PanelStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"


class SpocTeamAction(str, Enum):
    REMOVE_MEMBER = "remove-member"
    DELETE_TEAM = "delete-team"


class SpocRequestAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class AnnouncementAudience(str, Enum):
    ALL = "all"
    SPOC = "spoc"
    TEAMS = "teams"
    NOMINATED_TEAMS = "nominated_teams"
