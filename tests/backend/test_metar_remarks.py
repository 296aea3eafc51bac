"""Tests for METAR remarks decoding."""

from datetime import datetime, timezone

from stratus.services.metar_remarks import (
    DecodedRemarks,
    decode_remarks,
    decode_sea_level_pressure,
    report_pressure_mb,
)
from stratus.services.reports import RawReport

KSFO_METAR = (
    "METAR KSFO 182356Z 29017KT 10SM FEW008 14/M08 A2996 "
    "RMK AO2 SLP146 T01391083"
)


class TestTemperatureGroup:
    def test_positive_temp_negative_dewpoint(self):
        decoded = decode_remarks(KSFO_METAR)
        assert decoded.max_temp_f == 57  # 13.9C
        assert decoded.max_dewpoint_f == 17  # -8.3C

    def test_both_positive(self):
        decoded = decode_remarks("KSFO 182056Z 28015KT 10SM CLR 22/12 A2990 RMK AO2 T02220122")
        assert decoded.max_temp_f == 72  # 22.2C
        assert decoded.max_dewpoint_f == 54  # 12.2C

    def test_missing_group_leaves_fields_absent(self):
        decoded = decode_remarks("KSFO 182056Z 28015KT 10SM CLR 22/12 A2990 RMK AO2 SLP126")
        assert decoded.max_temp_f is None
        assert decoded.max_dewpoint_f is None
        assert decoded.sea_level_pressure_mb == 1012.6

    def test_group_before_remarks_is_ignored(self):
        decoded = decode_remarks("KSFO 182056Z T01390083 RMK AO2")
        assert decoded.max_temp_f is None


class TestNoRemarks:
    def test_no_marker_every_field_absent(self):
        decoded = decode_remarks("KSFO 182056Z 28015KT 10SM CLR 22/12 A2990")
        assert decoded == DecodedRemarks()

    def test_empty_and_none(self):
        assert decode_remarks("") == DecodedRemarks()
        assert decode_remarks(None) == DecodedRemarks()

    def test_garbage_does_not_raise(self):
        assert decode_remarks("RMK SLPNO T9xx A29") == DecodedRemarks()


class TestSeaLevelPressure:
    def test_low_digits_imply_ten(self):
        assert decode_sea_level_pressure("146") == 1014.6

    def test_high_digits_imply_nine(self):
        assert decode_sea_level_pressure("523") == 952.3

    def test_split_boundary(self):
        assert decode_sea_level_pressure("499") == 1049.9
        assert decode_sea_level_pressure("500") == 950.0

    def test_from_text(self):
        assert decode_remarks(KSFO_METAR).sea_level_pressure_mb == 1014.6

    def test_slpno_is_absent(self):
        assert decode_remarks("KACV 182356Z A2996 RMK AO2 SLPNO").sea_level_pressure_mb is None


class TestAltimeter:
    def test_altimeter_converted_to_mb(self):
        decoded = decode_remarks(KSFO_METAR)
        assert decoded.altimeter_mb == 1014.6  # 29.96 inHg

    def test_ao2_not_mistaken_for_altimeter(self):
        assert decode_remarks("KSFO 182356Z RMK AO2").altimeter_mb is None

    def test_body_group_needs_remarks_section(self):
        assert decode_remarks("KSFO 182356Z 29017KT 10SM A2996").altimeter_mb is None
        assert decode_remarks("KSFO 182356Z 29017KT 10SM A2996 RMK AO2").altimeter_mb == 1014.6


class TestReportPressure:
    def _report(self, raw: str, api_mb=None) -> RawReport:
        return RawReport(
            station_id="KSFO",
            timestamp=datetime(2024, 6, 18, 23, 56, tzinfo=timezone.utc),
            raw_text=raw,
            barometric_pressure_mb=api_mb,
        )

    def test_prefers_slp(self):
        assert report_pressure_mb(self._report(KSFO_METAR, 1010.0)) == 1014.6

    def test_falls_back_to_altimeter(self):
        assert report_pressure_mb(self._report("KSFO 182356Z A2992 RMK AO2 SLPNO")) == 1013.2

    def test_falls_back_to_api_field(self):
        assert report_pressure_mb(self._report("KSFO 182356Z A2992", 1012.9)) == 1012.9

    def test_nothing_available(self):
        assert report_pressure_mb(self._report("")) is None
