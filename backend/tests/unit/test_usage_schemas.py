"""Validation rules of the request bodies."""

import pytest
from pydantic import ValidationError

from backend.app.schemas.settings import AppConfig, AppConfigUpdate
from backend.app.schemas.usage import JobUsageCreate, UsageCreate


class TestUsageCreate:
    @pytest.mark.parametrize("spool_id,expected", [(5, "5"), ("5", "5"), (" 12 ", "12")])
    def test_spool_id_forms(self, spool_id, expected):
        assert UsageCreate(spool_id=spool_id, weight=1.0).spool_id == expected

    @pytest.mark.parametrize("spool_id", ["", "   ", None, True, 1.5, []])
    def test_invalid_spool_id(self, spool_id):
        with pytest.raises(ValidationError):
            UsageCreate(spool_id=spool_id, weight=1.0)

    @pytest.mark.parametrize("weight", ["abc", None, float("nan"), float("inf")])
    def test_invalid_weight(self, weight):
        with pytest.raises(ValidationError):
            UsageCreate(spool_id=1, weight=weight)

    def test_numeric_string_weight(self):
        assert UsageCreate(spool_id=1, weight="12.5").weight == 12.5

    def test_note_optional(self):
        assert UsageCreate(spool_id=1, weight=0).note is None


class TestJobUsageCreate:
    def test_needs_at_least_one_entry(self):
        with pytest.raises(ValidationError):
            JobUsageCreate(entries=[])

    def test_defaults(self):
        job = JobUsageCreate(entries=[{"spool_id": 1, "weight": 2.5}])
        assert job.flow_compensation is False
        assert job.entries[0].spool_id == "1"


class TestAppConfigUpdate:
    def test_accepts_camel_case(self):
        update = AppConfigUpdate.model_validate({"spoolmanUrl": "http://h:1", "flowCompensationValue": 2})
        assert update.spoolman_url == "http://h:1"
        assert update.flow_compensation_value == 2.0

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"spoolmanUrl": ""},
            {"spoolmanUrl": "   "},
            {"spoolmanUrl": 123},
            {"flowCompensationValue": -1},
        ],
    )
    def test_rejected(self, body):
        with pytest.raises(ValidationError):
            AppConfigUpdate.model_validate(body)

    def test_output_uses_camel_case(self):
        config = AppConfig(spoolman_url="http://h:1", flow_compensation_value=1.5)
        assert config.model_dump(by_alias=True) == {"spoolmanUrl": "http://h:1", "flowCompensationValue": 1.5}
