"""Utilities for building Slack modals from form schemas."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

TASK_FORM_CALLBACK_ID = "approval_task_form"
TASK_FIELD = "task"
TASK_INPUT_ACTION_ID = "input"

MAX_TITLE_LENGTH = 24
MAX_LABEL_LENGTH = 75
MAX_PLACEHOLDER_LENGTH = 150


@dataclass(frozen=True)
class FormField:
    name: str
    label: str
    placeholder: str = "Enter a value"
    multiline: bool = False
    required: bool = True
    action_id: str = TASK_INPUT_ACTION_ID


@dataclass(frozen=True)
class FormSchema:
    callback_id: str
    title: str
    fields: Tuple[FormField, ...]
    submit_label: str = "Submit"
    close_label: str = "Cancel"


TASK_FORM = FormSchema(
    callback_id=TASK_FORM_CALLBACK_ID,
    title="Request approval",
    fields=(
        FormField(
            name=TASK_FIELD,
            label="Task",
            placeholder="Describe the task, deadline, and anything the approver needs",
            multiline=True,
        ),
    ),
)

FORM_SCHEMAS: Dict[str, FormSchema] = {TASK_FORM.callback_id: TASK_FORM}


def get_form_schema(schema_id: str) -> FormSchema:
    return FORM_SCHEMAS[schema_id]


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def _field_to_block(field: FormField) -> Dict:
    element: Dict[str, object] = {
        "type": "plain_text_input",
        "action_id": field.action_id,
        "placeholder": {
            "type": "plain_text",
            "text": _truncate(field.placeholder, MAX_PLACEHOLDER_LENGTH),
        },
    }
    if field.multiline:
        element["multiline"] = True

    return {
        "type": "input",
        "block_id": field.name,
        "label": {
            "type": "plain_text",
            "text": _truncate(field.label, MAX_LABEL_LENGTH),
            "emoji": True,
        },
        "element": element,
        "optional": not field.required,
    }


def build_form(schema_id: str) -> Dict:
    """Build a Slack modal payload for the registered schema *schema_id*."""

    schema = get_form_schema(schema_id)
    blocks: List[Dict] = [_field_to_block(field) for field in schema.fields]

    return {
        "type": "modal",
        "callback_id": schema.callback_id,
        "title": {"type": "plain_text", "text": _truncate(schema.title, MAX_TITLE_LENGTH), "emoji": True},
        "submit": {"type": "plain_text", "text": schema.submit_label, "emoji": True},
        "close": {"type": "plain_text", "text": schema.close_label, "emoji": True},
        "blocks": blocks,
    }
