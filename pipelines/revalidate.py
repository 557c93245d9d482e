"""Later validator pass over stored records: re-probe their links and flag the dead ones."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from db.repos.profile_store import ProfileStore
from ports.providers import LinkProberPort
from profile_validator import ProfileValidator
from services.errors import PipelineError


logger = logging.getLogger(__name__)


def revalidate_subject(
    store: ProfileStore,
    prober: LinkProberPort,
    subject_id: str,
    validator: Optional[ProfileValidator] = None,
) -> Dict[str, Any]:
    """Flag stored links that stopped resolving. No new version is written."""
    record = store.get_profile(subject_id)
    if record is None:
        return {"subject_id": subject_id, "success": False, "error": "Profile not found in database"}
    validator = validator or ProfileValidator(prober)
    report = validator.revalidate_links(record.get("social_links") or {})

    open_flags = {(f.type, f.field, f.message) for f in store.get_flags(subject_id)}
    new_flags = [f for f in report.flags if (f.type, f.field, f.message) not in open_flags]
    try:
        flag_ids = store.add_flags(subject_id, new_flags)
    except PipelineError as e:
        return {"subject_id": subject_id, "success": False, "error": str(e)}

    logger.info(
        f"re-probed {report.links_probed} link(s), {len(new_flags)} new flag(s)",
        extra={"stage": "revalidation", "subject": subject_id, "status": "flagged" if new_flags else "ok"},
    )
    return {
        "subject_id": subject_id,
        "success": True,
        "links_probed": report.links_probed,
        "new_flags": [f.model_dump() for f in new_flags],
        "flag_ids": flag_ids,
        "active_flag_count": store.get_flag_summary(subject_id)["active_count"],
        "error": None,
    }


def revalidate_batch(store: ProfileStore, prober: LinkProberPort, subject_ids: Sequence[str]) -> Dict[str, Any]:
    validator = ProfileValidator(prober)
    results: List[Dict[str, Any]] = [revalidate_subject(store, prober, sid, validator) for sid in subject_ids]
    summary = {
        "total": len(results),
        "flagged": sum(1 for r in results if r.get("new_flags")),
        "failed": sum(1 for r in results if not r["success"]),
    }
    return {"summary": summary, "results": results}
