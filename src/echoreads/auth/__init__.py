"""Session and authentication module for echoreads."""

from .credentials import CredentialStore, RehydrationStatus
from .session import Session, SessionCache
from .gate import AuthCheckState, GateState, NavigationDecision, SessionGate
from .authenticator import AuthenticationManager

__all__ = [
    "CredentialStore",
    "RehydrationStatus",
    "Session",
    "SessionCache",
    "AuthCheckState",
    "GateState",
    "NavigationDecision",
    "SessionGate",
    "AuthenticationManager",
]
