"""
Admin allow-list.

An email is an admin when it is in ADMIN_EMAILS (comma-separated) or ends
with "@" + ADMIN_EMAIL_DOMAIN. Matching is case-insensitive and
whitespace-trimmed. The allow-list is built once from Settings and handed
to resolvers at construction time instead of being read from the
environment on every call.
"""
from dataclasses import dataclass, field
from typing import FrozenSet, Literal, Optional

from marketplace.core.config import Settings, settings


AdminMatchReason = Literal[
    "allowlist_no_email",
    "allowlist_email",
    "allowlist_domain",
    "allowlist_missing",
    "allowlist_no_match",
]


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


@dataclass(frozen=True)
class AdminMatch:
    """Outcome of an allow-list check, with the reason for diagnostics."""
    is_admin: bool
    reason: AdminMatchReason


@dataclass(frozen=True)
class AdminAllowlist:
    emails: FrozenSet[str] = field(default_factory=frozenset)
    domain: Optional[str] = None

    @classmethod
    def from_settings(cls, settings_obj: Optional[Settings] = None) -> "AdminAllowlist":
        cfg = settings_obj or settings
        emails = frozenset(
            normalize_email(value)
            for value in (cfg.ADMIN_EMAILS or "").split(",")
            if value.strip()
        )
        domain = normalize_email(cfg.ADMIN_EMAIL_DOMAIN).lstrip("@") or None
        return cls(emails=emails, domain=domain)

    @property
    def is_empty(self) -> bool:
        return not self.emails and not self.domain

    def match(self, email: Optional[str]) -> AdminMatch:
        normalized = normalize_email(email)
        if not normalized:
            return AdminMatch(False, "allowlist_no_email")
        if normalized in self.emails:
            return AdminMatch(True, "allowlist_email")
        if self.domain and normalized.endswith(f"@{self.domain}"):
            return AdminMatch(True, "allowlist_domain")
        if self.is_empty:
            return AdminMatch(False, "allowlist_missing")
        return AdminMatch(False, "allowlist_no_match")

    def is_admin_email(self, email: Optional[str]) -> bool:
        return self.match(email).is_admin
