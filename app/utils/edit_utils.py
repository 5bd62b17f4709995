from datetime import datetime
from typing import Dict, Optional
from pydantic import BaseModel


class EditProvenance(BaseModel):
    reason: Optional[str] = None
    edited_by: str
    ip_address: Optional[str] = None
    edited_at: datetime


def provenance_patch(record: BaseModel, provenance: EditProvenance, originals: Dict[str, str]) -> dict:
    """
    Build the edit-tracking fields for a record being edited.

    `originals` maps each snapshot field to the live field it copies, e.g.
    {"original_timestamp": "timestamp"}. Snapshots are taken only on the
    first edit; later edits keep the first snapshot.
    """
    patch = {
        "is_edited": True,
        "edit_reason": provenance.reason.strip() if provenance.reason else None,
        "edited_by": provenance.edited_by,
        "edited_at": provenance.edited_at,
        "edit_ip_address": provenance.ip_address,
    }
    for snapshot_field, live_field in originals.items():
        if getattr(record, "is_edited", False):
            patch[snapshot_field] = getattr(record, snapshot_field)
        else:
            patch[snapshot_field] = getattr(record, live_field)
    return patch
