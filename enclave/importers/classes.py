"""Import a player-created class from free text."""

import json
import logging
from typing import List

from enclave.database import ClassRecord
from enclave.errors import ImportValidationError
from enclave.llm.client import Extractor
from enclave.models.context import RequestContext
from enclave.models.enums import ClassStatus, RulesEdition, RulesVersion
from enclave.resources.base import commit

from .normalize import to_text, to_url_or_none
from .schemas import ClassFields, schema_for, validate_fields

logger = logging.getLogger(__name__)

MAX_ABILITIES = 3
MAX_GEAR = 6


def normalize_entries(entries, limit: int) -> List[dict]:
    """Turn strings or {name, description} objects into entries, dropping blanks."""
    result = []
    for entry in entries or []:
        if isinstance(entry, str):
            name, description = entry.strip(), ""
        elif isinstance(entry, dict):
            name = to_text(entry.get("name"))
            description = to_text(entry.get("description"))
        else:
            continue
        if not name:
            continue
        item = {"name": name}
        if description:
            item["description"] = description
        result.append(item)
        if len(result) == limit:
            break
    return result


def import_class(session, ctx: RequestContext, input_text: str, extractor: Extractor) -> ClassRecord:
    """Extract and store a player-created class.

    Non-admins cannot import a released class; such a status falls back to alpha.
    """
    if not (input_text or "").strip():
        raise ImportValidationError("Input text is required")

    raw = extractor.extract(input_text, schema_for(ClassFields))
    validated = validate_fields(ClassFields, raw, "class")

    name = to_text(validated.name)
    if not name:
        raise ImportValidationError("Invalid class data: Class name is required")
    abilities = normalize_entries(validated.abilities, MAX_ABILITIES)
    gear = normalize_entries(validated.gear, MAX_GEAR)
    if not abilities:
        raise ImportValidationError("Invalid class data: At least one ability is required to import a class")
    if not gear:
        raise ImportValidationError("Invalid class data: At least one gear item is required to import a class")

    status = validated.status or ClassStatus.ALPHA
    if status == ClassStatus.RELEASE and not ctx.is_admin:
        status = ClassStatus.ALPHA

    record = ClassRecord(
        name=name,
        teaser=to_text(validated.teaser),
        description=to_text(validated.description),
        image_url=to_url_or_none(validated.image_url),
        abilities_json=json.dumps(abilities),
        gear_json=json.dumps(gear),
        status=status.value,
        is_public=bool(validated.is_public),
        rules_edition=(validated.rules_edition or RulesEdition.ADVENT).value,
        rules_version=(validated.rules_version or RulesVersion.V1).value,
        is_player_created=True,
        created_by=ctx.profile_id,
    )
    session.add(record)
    commit(session, "class")
    logger.info("Imported class %s for profile %s", record.id, ctx.profile_id)
    return record
