import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from models import EnrichedProfile, ProfileFlag
from ports.providers import LinkProberPort
from services.name_utils import normalize_name
from services.scoring import MEDIUM_THRESHOLD


MIN_BIO_LENGTH = 50
MAX_NAME_VARIANTS = 2


@dataclass
class ValidationReport:
    flags: List[ProfileFlag] = field(default_factory=list)
    info: List[str] = field(default_factory=list)
    links_probed: int = 0

    @property
    def flag_count(self) -> int:
        return len(self.flags)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flags": [f.model_dump() for f in self.flags],
            "info": list(self.info),
            "links_probed": self.links_probed,
        }


class ProfileValidator:
    """Annotates an enriched profile with reviewable flags. Never edits the profile."""

    def __init__(self, prober: Optional[LinkProberPort] = None):
        self.prober = prober
        self.validation_stats = {
            'total_profiles': 0,
            'flagged_profiles': 0,
            'flags_by_type': {},
        }

    def _flag(self, report: ValidationReport, type_: str, severity: str, message: str, field_name: Optional[str] = None) -> None:
        report.flags.append(
            ProfileFlag(
                type=type_,
                severity=severity,
                field=field_name,
                message=message,
                created_at=datetime.now(timezone.utc).isoformat(),
            )
        )

    def validate_name(self, name: Optional[str]) -> bool:
        """Name must be present and look like a name."""
        if not name or not isinstance(name, str):
            return False
        name = name.strip()
        return (
            len(name) >= 2 and
            len(name) <= 200 and
            not name.startswith(('http', 'www', '@'))
        )

    def check_identity(self, profile: EnrichedProfile, report: ValidationReport) -> None:
        if not self.validate_name(profile.name):
            self._flag(report, "missing_data", "high", "Profile has no usable name", "name")
        bio = (profile.full_bio or "").strip()
        if len(bio) < MIN_BIO_LENGTH:
            message = "Biography is missing" if not bio else f"Biography is too short ({len(bio)} characters)"
            self._flag(report, "missing_data", "medium", message, "bio")
        if not profile.avatar_url:
            self._flag(report, "missing_data", "medium", "No profile image found", "avatar")

    def check_sources(self, profile: EnrichedProfile, report: ValidationReport) -> None:
        sources = set(profile.data_sources)
        if not sources:
            self._flag(report, "low_confidence", "high", "Profile was built with no external data sources")
        elif len(sources) == 1:
            only = next(iter(sources))
            self._flag(report, "low_confidence", "low", f"Profile relies on a single data source ({only})")

    def check_links(self, profile: EnrichedProfile, report: ValidationReport) -> None:
        self.check_link_set(profile.social_links.populated(), report)

    def check_link_set(self, links: Dict[str, str], report: ValidationReport) -> None:
        # Probed again, independent of the verification result
        if self.prober is None:
            return
        for kind, url in links.items():
            report.links_probed += 1
            if not self.prober.is_reachable(url):
                self._flag(report, "invalid_link", "medium", f"Link no longer reachable: {url}", kind)

    def revalidate_links(self, links: Dict[str, str]) -> ValidationReport:
        """Link checks alone, for records that are already stored."""
        report = ValidationReport()
        self.check_link_set({k: v for k, v in links.items() if v}, report)
        by_type = self.validation_stats['flags_by_type']
        for flag in report.flags:
            by_type[flag.type] = by_type.get(flag.type, 0) + 1
        return report

    def check_name_consistency(self, profile: EnrichedProfile, report: ValidationReport) -> None:
        distinct = {normalize_name(v) for v in profile.name_variants.values() if normalize_name(v)}
        if len(distinct) > MAX_NAME_VARIANTS:
            variants = ", ".join(sorted(set(profile.name_variants.values())))
            self._flag(report, "data_conflict", "low", f"Sources disagree on the name: {variants}", "name")

    def check_media(self, profile: EnrichedProfile, report: ValidationReport) -> None:
        if not (profile.youtube or profile.podcast or profile.books or profile.courses):
            report.info.append("No media channel or publication found")

    def check_confidence(self, profile: EnrichedProfile, report: ValidationReport) -> None:
        if profile.confidence_score < MEDIUM_THRESHOLD:
            self._flag(
                report, "low_confidence", "medium",
                f"Confidence score {profile.confidence_score} is below {MEDIUM_THRESHOLD}",
                "confidence",
            )

    def validate(self, profile: EnrichedProfile) -> ValidationReport:
        report = ValidationReport()
        self.check_identity(profile, report)
        self.check_sources(profile, report)
        self.check_links(profile, report)
        self.check_name_consistency(profile, report)
        self.check_media(profile, report)
        self.check_confidence(profile, report)

        self.validation_stats['total_profiles'] += 1
        if report.flags:
            self.validation_stats['flagged_profiles'] += 1
        for flag in report.flags:
            by_type = self.validation_stats['flags_by_type']
            by_type[flag.type] = by_type.get(flag.type, 0) + 1

        if report.flags:
            logging.info(f"Validation raised {len(report.flags)} flag(s) for {profile.display_name}")
        return report

    def get_validation_stats(self) -> Dict[str, Any]:
        return dict(self.validation_stats)
