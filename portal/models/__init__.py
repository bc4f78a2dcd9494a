from .enums import (
    UserRole, SpocStatus, Gender, TeamCategory, ProblemStatementCategory, SihSelectionStatus,
    PanelStatus, SpocTeamAction, SpocRequestAction, AnnouncementAudience, PROTECTED_ROLES
)
from .account import IdentityAccount
from .user import UserProfile
from .team import Team, TeamInvite, MAX_TEAM_MEMBERS, leader_snapshot, member_snapshot
from .jury import JuryPanel, jury_member_snapshot
from .problem_statement import ProblemStatement
from .announcement import Announcement, Institute
from .log import ActivityLog

__all__ = [
    'IdentityAccount',
    'UserProfile',
    'Team',
    'TeamInvite',
    'JuryPanel',
    'ProblemStatement',
    'Announcement',
    'Institute',
    'ActivityLog',
    'UserRole',
    'SpocStatus',
    'Gender',
    'TeamCategory',
    'ProblemStatementCategory',
    'SihSelectionStatus',
    'PanelStatus',
    'SpocTeamAction',
    'SpocRequestAction',
    'AnnouncementAudience',
    'PROTECTED_ROLES',
    'MAX_TEAM_MEMBERS',
    'leader_snapshot',
    'member_snapshot',
    'jury_member_snapshot',
]
