from .auth import router as auth_router
from .teams import router as teams_router
from .invites import router as invites_router
from .spoc import router as spoc_router
from .users import router as users_router
from .jury import router as jury_router
from .problem_statements import router as problem_statements_router
from .announcements import router as announcements_router
from .institutes import router as institutes_router

__all__ = [
    'auth_router',
    'teams_router',
    'invites_router',
    'spoc_router',
    'users_router',
    'jury_router',
    'problem_statements_router',
    'announcements_router',
    'institutes_router',
]
