"""
Upstream record text parsing tests
"""

import pytest

from fichas.errors import MalformedUpstreamPayload, UpstreamNotFound
from fichas.record_parser import (
    CompanyEntry,
    PhoneEntry,
    SalaryEntry,
    entry_field_key,
    normalize_label,
    parse_record_text,
    parse_upstream_payload,
)


class TestLabels:
    """Label normalization"""

    def test_accents_and_case_folded(self):
        assert normalize_label("Dirección") == "DIRECCION"
        assert normalize_label("grado instrucción") == "GRADO INSTRUCCION"

    def test_brackets_digits_and_pictographs_removed(self):
        assert normalize_label("[1] DNI") == "DNI"
        assert normalize_label(chr(0x1F4C5) + " FECHA  NACIMIENTO") == "FECHA NACIMIENTO"

    def test_entry_field_key_uses_underscores(self):
        assert entry_field_key("Razón Social") == "RAZON_SOCIAL"
        assert entry_field_key("SUELDO") == "SUELDO"


class TestParseRecordText:
    """Block splitting and entry extraction"""

    def test_personal_fields(self, sample_payload):
        record = parse_record_text(sample_payload["message"])
        person = record.personal
        assert person.dni == "45678912"
        assert person.surnames == "QUISPE MAMANI"
        assert person.given_names == "ROSA ELENA"
        assert person.sex == "FEMENINO"
        assert person.education_level == "SUPERIOR"
        assert person.address == "AV. LOS INCAS 123"
        assert person.full_name == "ROSA ELENA QUISPE MAMANI"

    def test_missing_fields_default_to_empty(self, sample_payload):
        person = parse_record_text(sample_payload["message"]).personal
        assert person.death_date == ""
        assert person.postal_code == ""

    def test_entry_lists_in_source_order(self, sample_payload):
        record = parse_record_text(sample_payload["message"])
        assert [s.employer for s in record.salaries] == ["ANDES SAC", "CUSCO TOURS EIRL"]
        assert record.salaries[0] == SalaryEntry(
            dni="45678912",
            tax_id="20100000001",
            employer="ANDES SAC",
            status="ACTIVO",
            amount="2500",
            period="2024-01",
        )
        assert record.phones == (
            PhoneEntry(dni="45678912", phone="987654321", plan="PREPAGO", source="CLARO", period="2023-12"),
        )
        assert record.companies == (
            CompanyEntry(
                dni="45678912",
                tax_id="20500000002",
                business_name="INVERSIONES ANDINAS SAC",
                position="GERENTE GENERAL",
                since="2019-05-01",
            ),
        )

    def test_parsing_is_deterministic(self, sample_payload):
        first = parse_record_text(sample_payload["message"])
        second = parse_record_text(sample_payload["message"])
        assert first == second
        assert [s.period for s in first.salaries] == [s.period for s in second.salaries]
        assert [p.phone for p in first.phones] == [p.phone for p in second.phones]
        assert [c.tax_id for c in first.companies] == [c.tax_id for c in second.companies]

    def test_value_keeps_text_after_first_colon(self):
        record = parse_record_text("DNI : 1\nDIRECCION : JR. LIMA 10 INT: 3")
        assert record.personal.address == "JR. LIMA 10 INT: 3"

    def test_values_cleaned_of_pictographs_and_page_markers(self):
        text = f"DNI : 1\nDIRECCION : CALLE SOL 5 {chr(0x1F3E0)}\nDISTRITO : MIRAFLORES [1/3]"
        person = parse_record_text(text).personal
        assert person.address == "CALLE SOL 5"
        assert person.district == "MIRAFLORES"

    def test_personal_only(self, personal_only_payload):
        record = parse_record_text(personal_only_payload["message"])
        assert record.personal.surnames == "TORRES"
        assert record.salaries == ()
        assert record.phones == ()
        assert record.companies == ()

    def test_unclassified_block_dropped(self):
        text = "DNI : 1\n---\nDNI : 1\nVEHICULO : ABC-123"
        record = parse_record_text(text)
        assert (record.salaries, record.phones, record.companies) == ((), (), ())

    def test_entry_without_dni_is_not_committed(self):
        text = "DNI : 1\n---\nTELEFONO : 999\nPLAN : POSTPAGO\nDNI : 1\nTELEFONO : 888"
        record = parse_record_text(text)
        assert [p.phone for p in record.phones] == ["888"]

    def test_blank_lines_and_empty_blocks_ignored(self):
        text = "\n\nDNI : 1\n\n---\n\n---\nDNI : 1\nSUELDO : 100\n"
        record = parse_record_text(text)
        assert len(record.salaries) == 1

    @pytest.mark.parametrize("text", ["", "   ", "---\n---"])
    def test_empty_text_is_malformed(self, text):
        with pytest.raises(MalformedUpstreamPayload):
            parse_record_text(text)

    def test_first_block_without_pairs_is_malformed(self):
        with pytest.raises(MalformedUpstreamPayload):
            parse_record_text("sin datos\n---\nDNI : 1\nSUELDO : 10")


class TestParseUpstreamPayload:
    """Full upstream JSON handling"""

    def test_photo_url_from_urls(self, sample_payload):
        record = parse_upstream_payload(sample_payload)
        assert record.photo_url == "https://img.example.com/45678912.jpg"

    def test_no_photo(self, personal_only_payload):
        assert parse_upstream_payload(personal_only_payload).photo_url is None

    def test_non_string_message_is_malformed(self):
        with pytest.raises(MalformedUpstreamPayload):
            parse_upstream_payload({"status": "ok", "message": {"dni": "1"}})

    def test_malformed_maps_to_not_found(self):
        assert issubclass(MalformedUpstreamPayload, UpstreamNotFound)
        assert MalformedUpstreamPayload.status_code == 404
