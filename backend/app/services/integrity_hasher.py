"""
Hash d'intégrité des scans (empreinte SHA-256 des faits immuables).

Le hash ne contient aucun secret : il est stocké avec le scan et sert
uniquement à prouver, par recalcul, que l'enregistrement n'a pas été modifié.
"""

import hashlib
from datetime import datetime, timezone

HASH_SEPARATOR = "|"


def to_iso_timestamp(moment: datetime) -> str:
    """Format ISO UTC à la milliseconde, ex. 2026-10-19T08:15:00.123Z."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def compute_integrity_hash(
    tenant_id: str,
    guard_id: str,
    installation_id: str,
    scan_type: str,
    timestamp_iso: str,
    lat: float,
    lng: float,
    method_id: str,
) -> str:
    payload = HASH_SEPARATOR.join(
        [
            str(tenant_id),
            str(guard_id),
            str(installation_id),
            scan_type,
            timestamp_iso,
            repr(float(lat)),
            repr(float(lng)),
            method_id,
        ]
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
