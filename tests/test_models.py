"""Tests for response models."""

import json

import pytest
from pydantic import ValidationError

from coin_analyzer.api.models import (
    AnalysisErrorResponse,
    CoinAnalysisResponse,
    TechnicalDetails,
    UNKNOWN_ANALYSIS_MESSAGE,
)

from conftest import ERROR_PAYLOAD, good_payload, unknown_payload


def parse(payload) -> CoinAnalysisResponse:
    return CoinAnalysisResponse.model_validate_json(json.dumps(payload))


class TestCoinAnalysisResponse:
    def test_parses_full_payload(self):
        response = parse(good_payload())

        assert response.success is True
        assert response.coin_analysis.basic_info.country == "United States"
        assert response.coin_analysis.technical_details.diameter_mm == "24.26"
        assert response.metadata.image_size_bytes == 48213

    def test_optional_technical_fields(self):
        payload = good_payload()
        payload["coin_analysis"]["technical_details"] = {"rarity": "Common"}

        details = parse(payload).coin_analysis.technical_details

        assert details.mint_mark is None
        assert details.diameter_mm is None

    def test_number_for_string_field_is_rejected(self):
        payload = good_payload()
        payload["coin_analysis"]["basic_info"]["released_year"] = 1965

        with pytest.raises(ValidationError):
            parse(payload)

    def test_error_shape(self):
        error = AnalysisErrorResponse.model_validate_json(json.dumps(ERROR_PAYLOAD))
        assert error.error == "boom"
        assert error.success is False


class TestUnknownAnalysis:
    def test_identified_coin(self):
        analysis = parse(good_payload()).coin_analysis

        assert not analysis.is_unknown_analysis
        assert analysis.unknown_analysis_message == ""

    @pytest.mark.parametrize("value", ["unknown", "Unknown", "UNKNOWN", "uNkNoWn"])
    def test_all_nine_fields_unknown(self, value):
        analysis = parse(unknown_payload(value)).coin_analysis

        assert analysis.is_unknown_analysis
        assert analysis.unknown_analysis_message == UNKNOWN_ANALYSIS_MESSAGE

    @pytest.mark.parametrize(
        "path",
        [
            ("basic_info", "released_year"),
            ("basic_info", "country"),
            ("basic_info", "denomination"),
            ("basic_info", "composition"),
            ("value_assessment", "collector_value"),
            ("value_assessment", "rarity"),
            ("description",),
            ("historical_context",),
            ("technical_details", "rarity"),
        ],
    )
    def test_one_known_field_is_enough(self, path):
        payload = unknown_payload()
        target = payload["coin_analysis"]
        for key in path[:-1]:
            target = target[key]
        target[path[-1]] = "Canada"

        assert not parse(payload).coin_analysis.is_unknown_analysis

    def test_optional_fields_do_not_count(self):
        payload = unknown_payload()
        payload["coin_analysis"]["technical_details"].update(mint_mark="D", diameter_mm="19.05")

        assert parse(payload).coin_analysis.is_unknown_analysis


class TestTechnicalDetails:
    @pytest.mark.parametrize(
        "diameter, formatted, present",
        [
            (None, "Unknown", False),
            ("", "Unknown", False),
            ("unknown", "Unknown", False),
            ("24.26", "24.3 mm", True),
            ("19", "19.0 mm", True),
            ("about 24", "about 24 mm", True),
        ],
    )
    def test_diameter_helpers(self, diameter, formatted, present):
        details = TechnicalDetails(rarity="Common", diameter_mm=diameter)

        assert details.formatted_diameter == formatted
        assert details.has_diameter is present
