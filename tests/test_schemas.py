"""Wire-format tests for the API schemas."""

import datetime

import pytest
from pydantic import ValidationError

from linktrace.models import Click, GeoInfo, Link
from linktrace.schemas import ClickUpdate, LinkResponse


def test_click_update_splits_key_from_payload() -> None:
    update = ClickUpdate.model_validate(
        {"linkId": "abc123", "clickId": "c1", "screen": "1920x1080", "nested": {"a": [1, 2]}}
    )
    assert update.link_id == "abc123"
    assert update.click_id == "c1"
    assert update.payload == {"screen": "1920x1080", "nested": {"a": [1, 2]}}


def test_click_update_requires_both_keys() -> None:
    with pytest.raises(ValidationError):
        ClickUpdate.model_validate({"linkId": "abc123", "screen": "1x1"})


def test_link_response_uses_camel_case_and_keeps_client_keys() -> None:
    now = datetime.datetime(2024, 5, 1, 12, 0, tzinfo=datetime.timezone.utc)
    click = Click(id="c1", timestamp=now, user_agent="ua", do_not_track=True)
    click.apply_geo(GeoInfo(ip="8.8.8.8", country_code="US"))
    click.apply_client({"color_depth": 24, "pixelRatio": 2})
    link = Link(id="abc123", url="http://t/track/abc123", created=now, clicks=[click])

    data = LinkResponse.model_validate(link).model_dump(by_alias=True, mode="json")

    out = data["clicks"][0]
    assert out["userAgent"] == "ua"
    assert out["doNotTrack"] is True
    assert out["country"] == "US"
    assert out["geo"]["countryCode"] == "US"
    assert out["client"] == {"color_depth": 24, "pixelRatio": 2}


def test_click_update_key_only_from_camel_case() -> None:
    with pytest.raises(ValidationError):
        ClickUpdate.model_validate({"link_id": "abc123", "click_id": "c1", "screen": "1x1"})


def test_click_update_snake_case_keys_stay_in_payload() -> None:
    update = ClickUpdate.model_validate({"linkId": "abc123", "clickId": "c1", "link_id": "other"})
    assert update.link_id == "abc123"
    assert update.payload == {"link_id": "other"}
