"""Profile Snapshot: immutable copy of an owner's shareable fields.

Invariants:
    - Snapshots are frozen dataclasses; every optional field is `X | None`
    - parse_snapshot never raises: wrong-typed or missing sub-fields become None
    - Preference keys absent from the source are simply absent here
      (fail-closed is applied by disclosure.py, not by filling in defaults)
    - Snapshot JSON uses canonical snake_case keys; camelCase product keys
      (allowedFields, defaultSharedLinks, jobTitle) are accepted on input

Design Decisions:
    - One parser for both live profiles and stored snapshots: a snapshot is
      built by parsing the profile row, then round-tripped through to_dict()
"""

from dataclasses import dataclass, field
from typing import Any, Mapping

from dislink.core.domain_types import (
    DisclosableField, FIELD_KEY_ALIASES, REQUIRED_PROFILE_FIELDS,
)


@dataclass(frozen=True)
class SharingPreferences:
    """Owner's disclosure settings. Missing keys mean "not shared"."""
    enabled: bool = False
    allowed_fields: Mapping[DisclosableField, bool] = field(default_factory=dict)
    shared_links: Mapping[str, bool] = field(default_factory=dict)

    def allows(self, field_name: DisclosableField) -> bool:
        return self.allowed_fields.get(field_name) is True

    def shares_link(self, platform: str) -> bool:
        return self.shared_links.get(platform) is True


@dataclass(frozen=True)
class BioDetails:
    about: str | None = None
    location: str | None = None
    hometown: str | None = None


@dataclass(frozen=True)
class ProfileSnapshot:
    """Denormalized profile at issuance time. Never refers to live data."""
    name: str
    profile_image: str | None = None
    job_title: str | None = None
    company: str | None = None
    bio: BioDetails | None = None
    interests: tuple[str, ...] | None = None
    social_links: Mapping[str, str] | None = None
    sharing: SharingPreferences | None = None

    def to_dict(self) -> dict:
        """Serialize to the JSON shape stored in connection_codes.profile_snapshot."""
        return {
            "name": self.name,
            "profile_image": self.profile_image,
            "job_title": self.job_title,
            "company": self.company,
            "bio": (
                {
                    "about": self.bio.about,
                    "location": self.bio.location,
                    "from": self.bio.hometown,
                }
                if self.bio else None
            ),
            "interests": list(self.interests) if self.interests is not None else None,
            "social_links": dict(self.social_links) if self.social_links is not None else None,
            "sharing": (
                {
                    "enabled": self.sharing.enabled,
                    "allowed_fields": {
                        k.value: v for k, v in self.sharing.allowed_fields.items()
                    },
                    "shared_links": dict(self.sharing.shared_links),
                }
                if self.sharing else None
            ),
        }


# --- Parsing ------------------------------------------------------------------

def parse_snapshot(data: Any) -> ProfileSnapshot:
    """Parse a stored snapshot dict. Tolerates any malformed input."""
    if not isinstance(data, Mapping):
        return ProfileSnapshot(name="")
    return ProfileSnapshot(
        name=_str_or_none(data.get("name")) or "",
        profile_image=_str_or_none(data.get("profile_image")),
        job_title=_str_or_none(data.get("job_title")),
        company=_str_or_none(data.get("company")),
        bio=_parse_bio(data.get("bio")),
        interests=_parse_interests(data.get("interests")),
        social_links=_parse_social_links(data.get("social_links")),
        sharing=_parse_sharing(data.get("sharing")),
    )


def snapshot_from_profile(profile: Mapping[str, Any]) -> ProfileSnapshot:
    """Build a snapshot from a live profile row (as a plain dict)."""
    first = _str_or_none(profile.get("first_name")) or ""
    last = _str_or_none(profile.get("last_name")) or ""
    return ProfileSnapshot(
        name=f"{first} {last}".strip(),
        profile_image=_str_or_none(profile.get("profile_image")),
        job_title=_str_or_none(profile.get("job_title")),
        company=_str_or_none(profile.get("company")),
        bio=_parse_bio(profile.get("bio")),
        interests=_parse_interests(profile.get("interests")),
        social_links=_parse_social_links(profile.get("social_links")),
        sharing=_parse_sharing(profile.get("public_profile")),
    )


def find_missing_profile_fields(profile: Mapping[str, Any]) -> list[str]:
    """Required fields that are absent or blank."""
    return [
        name for name in REQUIRED_PROFILE_FIELDS
        if not (_str_or_none(profile.get(name)) or "").strip()
    ]


def _parse_bio(raw: Any) -> BioDetails | None:
    if isinstance(raw, str):
        return BioDetails(about=raw) if raw.strip() else None
    if not isinstance(raw, Mapping):
        return None
    bio = BioDetails(
        about=_str_or_none(raw.get("about")) or _str_or_none(raw.get("text")),
        location=_str_or_none(raw.get("location")),
        hometown=_str_or_none(raw.get("from")),
    )
    if bio == BioDetails():
        return None
    return bio


def _parse_interests(raw: Any) -> tuple[str, ...] | None:
    if not isinstance(raw, (list, tuple)):
        return None
    return tuple(item for item in raw if isinstance(item, str) and item.strip())


def _parse_social_links(raw: Any) -> dict[str, str] | None:
    if not isinstance(raw, Mapping):
        return None
    return {
        str(platform): url
        for platform, url in raw.items()
        if isinstance(url, str) and url.strip()
    }


def _parse_sharing(raw: Any) -> SharingPreferences | None:
    if not isinstance(raw, Mapping):
        return None
    allowed_raw = _first_mapping(raw, "allowed_fields", "allowedFields")
    links_raw = _first_mapping(raw, "shared_links", "sharedLinks", "defaultSharedLinks")
    allowed: dict[DisclosableField, bool] = {}
    for key, value in allowed_raw.items():
        canonical = FIELD_KEY_ALIASES.get(key)
        if canonical is not None and isinstance(value, bool):
            # snake_case and camelCase for one field: any False wins
            allowed[canonical] = allowed.get(canonical, True) and value
    return SharingPreferences(
        enabled=raw.get("enabled") is True,
        allowed_fields=allowed,
        shared_links={
            str(k): v for k, v in links_raw.items() if isinstance(v, bool)
        },
    )


def _first_mapping(raw: Mapping, *keys: str) -> Mapping:
    for key in keys:
        value = raw.get(key)
        if isinstance(value, Mapping):
            return value
    return {}


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None
