"""Field schemas handed to the extractor and used to re-validate its output."""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from enclave.consts import ALL_CLASSES, ALL_GEAR, PERSONALITY_TRAITS
from enclave.errors import ImportValidationError
from enclave.models.enums import ClassStatus, RulesEdition, RulesVersion

_TRAITS = ", ".join(PERSONALITY_TRAITS)
_CLASSES = ", ".join(ALL_CLASSES)
_GEAR = ", ".join(ALL_GEAR)
_STAT_HINT = "may be written as a number or a series of plus signs (+); give the number"


class MissionFields(BaseModel):
    """Mission log."""
    model_config = ConfigDict(title="mission", extra="ignore")

    name: str = Field(description="Mission name/title")
    date: Optional[str] = Field(None, description="Mission date/time in any recognizable format")
    outcome: Optional[str] = Field(None, description="Outcome such as success, failure, or pending")
    focus_words: Optional[str] = Field(None, description="Optional focus words or tags")
    statement: Optional[str] = Field(None, description="Mission statement or objective")
    summary: Optional[str] = Field(None, description="Mission summary or play log")
    media_url: Optional[str] = Field(None, description="Optional media URL (YouTube/Twitch/etc)")
    characters: Optional[List[str]] = Field(None, description="Array of participant character names")


class CharacterFields(BaseModel):
    """Character sheet."""
    model_config = ConfigDict(title="character", extra="ignore", populate_by_name=True)

    name: str = Field(description="The character's name")
    class_name: str = Field(alias="class", description=f"The character's class, one of: {_CLASSES}")
    trait0: Optional[str] = Field(None, description=f"First personality trait, one of: {_TRAITS}")
    trait1: Optional[str] = Field(None, description=f"Second personality trait, one of: {_TRAITS}")
    trait2: Optional[str] = Field(None, description=f"Third personality trait, one of: {_TRAITS}")
    vitality: int = Field(description=f"Vitality; {_STAT_HINT}")
    might: int = Field(description=f"Might; {_STAT_HINT}")
    resilience: int = Field(description=f"Resilience; {_STAT_HINT}")
    spirit: int = Field(description=f"Spirit; {_STAT_HINT}")
    arcane: int = Field(description=f"Arcane; {_STAT_HINT}")
    will: int = Field(description=f"Will; {_STAT_HINT}")
    sensory: int = Field(description=f"Sensory; {_STAT_HINT}")
    reflex: int = Field(description=f"Reflex; {_STAT_HINT}")
    vigor: int = Field(description=f"Vigor; {_STAT_HINT}")
    skill: int = Field(description=f"Skill; {_STAT_HINT}")
    intelligence: int = Field(description=f"Intelligence; {_STAT_HINT}")
    luck: int = Field(description=f"Luck; {_STAT_HINT}")
    level: int = Field(description="The character's level")
    completed_missions: int = Field(description="Number of missions the character has completed")
    commissary_reward: int = Field(description="The character's commissary reward")
    appearance: str = Field("", description="The character's appearance")
    gear: Optional[List[str]] = Field(None, description=f"The character's gear, from: {_GEAR}")
    additional_gear: str = Field("", description="The character's common items")
    image_url: Optional[str] = Field(None, description="The character's image URL")
    flavor: str = Field("", description="Stories about the character besides missions")
    ideas: str = Field("", description="The player's ideas for the character")
    background: str = Field("", description="The character's background")
    perks: str = Field("", description="The character's ability perks")


class ClassFields(BaseModel):
    """Player-created class writeup."""
    model_config = ConfigDict(title="player_created_class", extra="ignore")

    name: str = Field(description="Class name")
    teaser: Optional[str] = Field(None, description="Short teaser or hook for list display")
    description: str = Field(description="Full class description and pitch")
    image_url: Optional[str] = Field(None, description="Optional image URL for the class")
    abilities: List[Any] = Field(description="List of class abilities (ideally three)")
    gear: List[Any] = Field(description="List of class gear items (ideally six)")
    status: Optional[ClassStatus] = Field(None, description="Class status; player-created classes default to alpha")
    is_public: Optional[bool] = Field(None, description="Whether the class should be public")
    rules_edition: Optional[RulesEdition] = Field(None, description="Rules edition; defaults to advent")
    rules_version: Optional[RulesVersion] = Field(None, description="Rules version; defaults to v1")


def schema_for(model) -> dict:
    return model.model_json_schema(by_alias=True)


def _describe(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(p) for p in err["loc"]) or "value"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)


def validate_fields(model, data, what: str):
    """Re-validate extractor output against ``model``.

    Raises:
        ImportValidationError: With a readable list of failing fields
    """
    if not isinstance(data, dict):
        raise ImportValidationError(f"Invalid {what} data: expected an object")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ImportValidationError(f"Invalid {what} data: {_describe(e)}") from e
