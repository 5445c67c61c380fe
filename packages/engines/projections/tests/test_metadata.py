from __future__ import annotations

from pydantic import BaseModel

from esdoc_core import RecordedEvent
from esdoc_projections import extract_from_event


class Confirmed(BaseModel):
    client_id: str


def _event(data: object, metadata: dict[str, object]) -> RecordedEvent:
    return RecordedEvent(
        type="ShoppingCartConfirmed",
        data=data,  # type: ignore[arg-type]
        stream_name="cart-1",
        stream_position=0,
        global_position=0,
        metadata=metadata,
    )


def test_extracts_from_metadata_by_default() -> None:
    event = _event({"clientId": "from-data"}, {"clientId": "from-metadata"})
    assert extract_from_event(event, "clientId") == "from-metadata"


def test_extracts_from_data() -> None:
    event = _event({"clientId": "from-data"}, {})
    assert extract_from_event(event, "clientId", "data") == "from-data"


def test_missing_field_is_none() -> None:
    assert extract_from_event(_event({}, {}), "clientId") is None


def test_extracts_from_pydantic_payload() -> None:
    event = _event(Confirmed(client_id="ann"), {})
    assert extract_from_event(event, "client_id", source="data") == "ann"
