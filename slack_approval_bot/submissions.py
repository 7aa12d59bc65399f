"""Parse Slack modal state into form submissions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping

from pydantic import BaseModel, Field, ValidationError

from .modal import get_form_schema


class SubmissionValue(BaseModel):
    """Represents a single field value coming from Slack modal state."""

    value: str | None = Field(None, alias="value")


class SubmissionState(BaseModel):
    """Model to validate Slack modal state payloads."""

    values: Dict[str, Dict[str, SubmissionValue]]


@dataclass(frozen=True)
class FormSubmission:
    callback_id: str
    values: Mapping[str, str]

    def get(self, name: str) -> str:
        return self.values.get(name, "")


def parse_form_submission(callback_id: str, state_values: Mapping[str, Any]) -> FormSubmission:
    """Map the schema's fields to stripped submitted strings.

    Missing fields map to an empty string. ``KeyError`` for an unknown
    schema, ``ValueError`` when the state payload has the wrong shape.
    """

    schema = get_form_schema(callback_id)

    try:
        state = SubmissionState.model_validate({"values": dict(state_values)})
    except ValidationError as exc:
        raise ValueError("Invalid submission payload") from exc

    values: Dict[str, str] = {}
    for field in schema.fields:
        block_state = state.values.get(field.name, {})
        if field.action_id in block_state:
            raw = block_state[field.action_id].value
        else:
            # fall back to the first element in the block
            raw = next(iter(block_state.values()), SubmissionValue()).value
        values[field.name] = (raw or "").strip()

    return FormSubmission(callback_id=callback_id, values=values)
