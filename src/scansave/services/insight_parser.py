"""Parsing of model output into insight fields."""

import logging
import re

from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from scansave.domain.insights import ParsedInsight, ParseStatus

SUGGESTION_HEADINGS: dict[str, str] = {
    "recycling": "Recycling Instructions",
    "health": "Health Analysis",
    "alternatives": "Alternative Suggestions",
    "usage": "Usage Tips",
    "environmental": "Environmental Impact",
    "price": "Price Analysis",
}

OVERVIEW_HEADINGS: dict[str, str] = {
    "environmental_insight": "Environmental Insight",
    "nutritional_insight": "Nutritional Insight",
    "spending_insight": "Spending Insight",
}

_FENCE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL | re.IGNORECASE)
_BOLD = re.compile(r"\*\*")
_LIST_MARKER = re.compile(r"^\s*[-•]\s*", re.MULTILINE)
_HEADING = re.compile(r"#{1,6}\s")

_logger = logging.getLogger(__name__)


def insight_schema(
    model: type[BaseModel], headings: dict[str, str]
) -> dict[str, object]:
    """Build a strict JSON schema requesting the model fields named in ``headings``."""
    properties = model.model_json_schema()["properties"]
    keys = [key for key in headings if key in properties]
    return {
        "type": "object",
        "properties": {
            key: {"type": "string", "description": headings[key]} for key in keys
        },
        "required": keys,
        "additionalProperties": False,
    }


def parse_insight_text(
    text: str, model: type[BaseModel], headings: dict[str, str]
) -> ParsedInsight:
    """Parse model output into the fields named by ``headings``.

    The text is first validated as ``model`` JSON. When that fails, each field
    is pulled out with a ``"key": "value"`` pattern and then with a
    ``Heading: ...`` section pattern, in that order.
    """
    fields = _parse_structured(text, model, list(headings))
    if fields:
        return ParsedInsight(status=ParseStatus.SUCCESS, fields=fields)

    _logger.warning("Insight response was not valid JSON, extracting fields")
    fields = _extract_fields(text, headings)
    if fields:
        return ParsedInsight(status=ParseStatus.PARTIAL, fields=fields)
    return ParsedInsight(status=ParseStatus.FAILURE)


def clean_text(value: str) -> str:
    """Strip markdown formatting from a generated string."""
    value = _BOLD.sub("", value)
    value = value.replace("\n\n", "\n")
    value = _LIST_MARKER.sub("", value)
    value = _HEADING.sub("", value)
    return value.strip()


def _parse_structured(
    text: str, model: type[BaseModel], keys: list[str]
) -> dict[str, str]:
    fenced = _FENCE.match(text)
    candidate = fenced.group(1) if fenced else text
    try:
        parsed = model.model_validate_json(candidate)
    except ModelValidationError:
        return {}
    fields = {}
    for key in keys:
        value = getattr(parsed, key, None)
        if isinstance(value, str) and clean_text(value):
            fields[key] = clean_text(value)
    return fields


def _extract_fields(text: str, headings: dict[str, str]) -> dict[str, str]:
    ordered = list(headings.items())
    fields = {}
    for index, (key, heading) in enumerate(ordered):
        value = _match_key(text, key)
        if value is None:
            following = ordered[index + 1][1] if index + 1 < len(ordered) else None
            value = _match_section(text, heading, following)
        if value and clean_text(value):
            fields[key] = clean_text(value)
    return fields


def _match_key(text: str, key: str) -> str | None:
    pattern = re.compile(
        re.escape(key) + r"[\"']?\s*:\s*[\"']([^\"']*)[\"']", re.IGNORECASE
    )
    match = pattern.search(text)
    return match.group(1) if match else None


def _match_section(text: str, heading: str, following: str | None) -> str | None:
    end = rf"(?={re.escape(following)}:|$)" if following else r"$"
    pattern = re.compile(rf"{re.escape(heading)}:?(.*?){end}", re.DOTALL)
    match = pattern.search(text)
    return match.group(1).strip() if match else None
