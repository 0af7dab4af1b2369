"""Strict schema for the model's JSON response.

Parsing goes through `parse_summary` only; nothing downstream looks at raw
model output.
"""

from pydantic import BaseModel, ConfigDict, ValidationError

from channel_summarizer.errors import MalformedResponse


class SummaryItem(BaseModel):
    model_config = ConfigDict(strict=True)

    title: str
    id: int


class SummaryGroup(BaseModel):
    model_config = ConfigDict(strict=True)

    title: str
    messages: list[SummaryItem]


class SummaryResponse(BaseModel):
    model_config = ConfigDict(strict=True)

    result: list[SummaryGroup]


def parse_summary(raw: str | None) -> list[SummaryGroup]:
    """Parse and validate the model's JSON body.

    Raises:
        MalformedResponse: Body is empty, not JSON, or does not match the schema.
    """
    if not raw or not raw.strip():
        raise MalformedResponse("Error: Response format is empty.")
    try:
        return SummaryResponse.model_validate_json(raw).result
    except ValidationError as e:
        raise MalformedResponse() from e


def deduplicate_groups(groups: list[SummaryGroup], known_ids: set[int]) -> list[SummaryGroup]:
    """Keep each known message id in at most one group.

    Ids the model invented are dropped, a repeated id keeps its first
    occurrence, and groups left without messages are removed.
    """
    seen: set[int] = set()
    cleaned: list[SummaryGroup] = []
    for group in groups:
        items = []
        for item in group.messages:
            if item.id not in known_ids or item.id in seen:
                continue
            seen.add(item.id)
            items.append(item)
        if items:
            cleaned.append(SummaryGroup(title=group.title, messages=items))
    return cleaned
