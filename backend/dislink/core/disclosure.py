"""Disclosure Filter: reduces a snapshot to what its owner agreed to share.

Invariants:
    - PURE: no IO, no side effects, never raises
    - Fail-closed: a field or link is disclosed only when its preference is
      exactly True; missing, null, or non-bool preferences exclude it
    - name and profile_image are minimal identity and always disclosed
    - A snapshot with no sharing preferences discloses identity only
"""

from dataclasses import dataclass, field

from dislink.core.domain_types import DisclosableField
from dislink.core.snapshot import ProfileSnapshot, SharingPreferences


@dataclass(frozen=True)
class PublicViewModel:
    """Sanitized profile safe for anonymous rendering."""
    name: str
    profile_image: str | None = None
    job_title: str | None = None
    company: str | None = None
    bio: str | None = None
    location: str | None = None
    hometown: str | None = None
    interests: tuple[str, ...] = ()
    social_links: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "profile_image": self.profile_image,
            "job_title": self.job_title,
            "company": self.company,
            "bio": self.bio,
            "location": self.location,
            "hometown": self.hometown,
            "interests": list(self.interests),
            "social_links": dict(self.social_links),
        }


def filter_snapshot(snapshot: ProfileSnapshot) -> PublicViewModel:
    """Apply the snapshot's sharing preferences to its own fields."""
    prefs = snapshot.sharing or SharingPreferences()
    bio = snapshot.bio

    return PublicViewModel(
        name=snapshot.name,
        profile_image=snapshot.profile_image,
        job_title=_gate(prefs, DisclosableField.JOB_TITLE, snapshot.job_title),
        company=_gate(prefs, DisclosableField.COMPANY, snapshot.company),
        bio=_gate(prefs, DisclosableField.BIO, bio.about if bio else None),
        location=_gate(prefs, DisclosableField.LOCATION, bio.location if bio else None),
        hometown=_gate(prefs, DisclosableField.LOCATION, bio.hometown if bio else None),
        interests=(
            tuple(snapshot.interests)
            if snapshot.interests and prefs.allows(DisclosableField.INTERESTS)
            else ()
        ),
        social_links={
            platform: url
            for platform, url in (snapshot.social_links or {}).items()
            if prefs.shares_link(platform)
        },
    )


def _gate(
    prefs: SharingPreferences, field_name: DisclosableField, value: str | None,
) -> str | None:
    return value if prefs.allows(field_name) else None
