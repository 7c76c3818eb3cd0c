#!/usr/bin/env python3
"""
Access Guard - role-based navigation decisions.

evaluate_access() is a pure function over an explicit SessionState and an
AccessPolicy. It never reads the Flask session itself; the request adapter in
vmguardian.utils.decorators resolves the session and passes it in.

Outcomes:
- PENDING: session still resolving, show a placeholder and re-evaluate later
- RENDER: show the view
- REDIRECT_LOGIN: send to /login, remembering where the user was going
- REDIRECT_ROLE_HOME: signed in but not allowed here, send to the role's home
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Optional
from urllib.parse import urlencode

ROLE_ADMIN = 'admin'
ROLE_INSTRUCTOR = 'instructor'
ROLE_STUDENT = 'student'
ROLES = (ROLE_ADMIN, ROLE_INSTRUCTOR, ROLE_STUDENT)

LOGIN_PATH = '/login'
LANDING_PATH = '/'

ROLE_HOMES = {
    ROLE_ADMIN: '/admin',
    ROLE_STUDENT: '/student',
}


def role_home(role: Optional[str]) -> str:
    """Default landing route for a role; unmapped roles go to the landing page."""
    return ROLE_HOMES.get(role, LANDING_PATH)


class SessionStatus(str, Enum):
    LOADING = 'loading'
    UNAUTHENTICATED = 'unauthenticated'
    AUTHENTICATED = 'authenticated'


@dataclass(frozen=True)
class SessionUser:
    """The slice of a user the guard needs."""
    id: object
    role: str
    email: Optional[str] = None


@dataclass(frozen=True)
class SessionState:
    status: SessionStatus
    user: Optional[SessionUser] = None

    @classmethod
    def loading(cls) -> 'SessionState':
        return cls(SessionStatus.LOADING)

    @classmethod
    def unauthenticated(cls) -> 'SessionState':
        return cls(SessionStatus.UNAUTHENTICATED)

    @classmethod
    def authenticated(cls, user: SessionUser) -> 'SessionState':
        if user is None:
            return cls.unauthenticated()
        return cls(SessionStatus.AUTHENTICATED, user)


@dataclass(frozen=True)
class AccessPolicy:
    """Access requirement attached to a view.

    required_role and allowed_roles may both be set; a user must then satisfy
    both. A policy with neither admits any signed-in user.
    """
    required_role: Optional[str] = None
    allowed_roles: FrozenSet[str] = frozenset()

    @classmethod
    def any_user(cls) -> 'AccessPolicy':
        return cls()

    @classmethod
    def require(cls, role: str) -> 'AccessPolicy':
        return cls(required_role=role)

    @classmethod
    def allow(cls, *roles: str) -> 'AccessPolicy':
        return cls(allowed_roles=frozenset(roles))

    @classmethod
    def from_options(cls, required_role: Optional[str] = None,
                     allowed_roles: Optional[Iterable[str]] = None) -> 'AccessPolicy':
        return cls(required_role=required_role or None,
                   allowed_roles=frozenset(allowed_roles or ()))

    @property
    def is_open(self) -> bool:
        return not self.required_role and not self.allowed_roles

    def permits(self, role: Optional[str]) -> bool:
        if self.required_role and role != self.required_role:
            return False
        if self.allowed_roles and role not in self.allowed_roles:
            return False
        return True


class GuardOutcome(str, Enum):
    PENDING = 'pending'
    RENDER = 'render'
    REDIRECT_LOGIN = 'redirect_login'
    REDIRECT_ROLE_HOME = 'redirect_role_home'


@dataclass(frozen=True)
class GuardDecision:
    outcome: GuardOutcome
    location: Optional[str] = None
    next_path: Optional[str] = None

    @property
    def renders(self) -> bool:
        return self.outcome is GuardOutcome.RENDER

    @property
    def is_redirect(self) -> bool:
        return self.outcome in (GuardOutcome.REDIRECT_LOGIN, GuardOutcome.REDIRECT_ROLE_HOME)

    @property
    def redirect_url(self) -> Optional[str]:
        """Location including the remembered destination, if any."""
        if not self.is_redirect:
            return None
        if self.next_path:
            return f"{self.location}?{urlencode({'next': self.next_path})}"
        return self.location


def evaluate_access(session_state: SessionState,
                    policy: Optional[AccessPolicy] = None,
                    current_path: Optional[str] = None) -> GuardDecision:
    """Decide what to do with a navigation to a guarded view.

    Args:
        session_state: Current authentication state
        policy: Access requirement of the view (None means any signed-in user)
        current_path: Requested path, remembered for the post-login redirect

    Returns:
        GuardDecision; never raises
    """
    policy = policy or AccessPolicy.any_user()

    if session_state.status is SessionStatus.LOADING:
        return GuardDecision(GuardOutcome.PENDING)

    if session_state.status is not SessionStatus.AUTHENTICATED or session_state.user is None:
        return GuardDecision(GuardOutcome.REDIRECT_LOGIN, LOGIN_PATH, current_path or None)

    if policy.is_open:
        return GuardDecision(GuardOutcome.RENDER)

    role = session_state.user.role
    if not policy.permits(role):
        return GuardDecision(GuardOutcome.REDIRECT_ROLE_HOME, role_home(role))

    return GuardDecision(GuardOutcome.RENDER)
