"""Derived-metrics (working weights) profile: lookup and prompt formatting."""

from typing import Any, Optional
from uuid import UUID

from models import WeightsProfile
from services.trainer_store import TrainerStore


async def get_latest_profile(store: TrainerStore, user_id: UUID) -> Optional[WeightsProfile]:
    return await store.get_latest_weights_profile(user_id)


def format_profile_for_prompt(profile: Any) -> Optional[str]:
    """
    One line per entry, e.g. `- dumbbell bench press: 25 lbs (confidence: moderate)`.

    Returns None when there is no profile or it has no entries.
    """
    entries = getattr(profile, "profile_json", None) if profile is not None else None
    if not isinstance(entries, list) or not entries:
        return None

    lines = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        equipment = f"{entry['equipment']} " if entry.get("equipment") else ""
        lines.append(
            f"- {equipment}{entry.get('movement')}: {entry.get('load')} {entry.get('load_unit')} "
            f"(confidence: {entry.get('confidence')})"
        )
    return "\n".join(lines) or None
