"""
Integration tests for HQMF criteria parsing.
"""

import json

import pytest

ROOT = "2.16.840.1.113883.3.100.1"


@pytest.fixture
def models(session, measure_path):
    from hqmf.parser import load_document
    return session.parse_document(load_document(measure_path))


@pytest.fixture
def by_id(models):
    return {model.id: model for model in models}


class TestDocument:
    """Test parsing the fixture measure end to end."""

    def test_entries_in_document_order(self, measure_path):
        from hqmf.parser import iter_criteria_entries, load_document

        entries = iter_criteria_entries(load_document(measure_path))
        assert len(entries) == 9

    def test_registry_order(self, models):
        assert [model.id for model in models] == [
            f"EncounterPerformedInpatient_{ROOT}",
            f"OccurrenceA_EncounterPerformedInpatient_{ROOT}",
            f"OccurrenceB_EncounterPerformedInpatient_{ROOT}",
            f"DiagnosisDiabetes_{ROOT}",
            f"DiagnosisPrediabetes_{ROOT}",
            f"qdm_var_HasDiabetes_3_{ROOT}",
            f"GROUP_qdm_var_HasDiabetes_3_{ROOT}",
            f"MedicationOrderNotDoneBetaBlocker_{ROOT}",
            f"PatientCharacteristicBirthdate_{ROOT}",
            f"LaboratoryTestPerformedHbA1c_{ROOT}",
        ]

    def test_source_criteria(self, by_id):
        model = by_id[f"EncounterPerformedInpatient_{ROOT}"]

        assert model.definition == "encounter"
        assert model.status == "performed"
        assert model.code_list_id == "2.16.840.1.113883.3.666.5.307"
        assert model.title == "Encounter Inpatient"
        assert model.description == "Encounter, Performed: Encounter Inpatient"
        assert model.specific_occurrence is None

    def test_specific_occurrences(self, by_id, session):
        first = by_id[f"OccurrenceA_EncounterPerformedInpatient_{ROOT}"]
        second = by_id[f"OccurrenceB_EncounterPerformedInpatient_{ROOT}"]

        assert first.specific_occurrence == "A"
        assert second.specific_occurrence == "B"
        for model in (first, second):
            assert model.source_data_criteria == f"EncounterPerformedInpatient_{ROOT}"
            assert model.specific_occurrence_const == f"ENCOUNTERPERFORMEDINPATIENT_{ROOT}"
            assert model.code_list_id == "2.16.840.1.113883.3.666.5.307"
            assert model.description == "Encounter, Performed: Encounter Inpatient"
        assert session.occurrences.as_dict() == {f"EncounterPerformedInpatient_{ROOT}": "A"}

    def test_variable_grouping(self, by_id):
        from hqmf.models import DerivationOperator

        grouper = by_id[f"qdm_var_HasDiabetes_3_{ROOT}"]
        leaf = by_id[f"GROUP_qdm_var_HasDiabetes_3_{ROOT}"]

        assert grouper.variable is True
        assert grouper.definition == "derived"
        assert grouper.derivation_operator == DerivationOperator.UNION
        assert grouper.children_criteria == (f"GROUP_qdm_var_HasDiabetes_3_{ROOT}",)
        assert grouper.description == "qdm_var_HasDiabetes_3"
        assert grouper.code_list_id is None

        assert leaf.variable is False
        assert leaf.children_criteria == (f"DiagnosisDiabetes_{ROOT}", f"DiagnosisPrediabetes_{ROOT}")
        assert leaf.description == "HasDiabetes"

    def test_negated_medication(self, by_id):
        model = by_id[f"MedicationOrderNotDoneBetaBlocker_{ROOT}"]

        assert model.negation is True
        assert model.negation_code_list_id == "2.16.840.1.113883.3.526.3.1007"
        assert set(model.field_values) == {"ROUTE"}
        assert model.code_list_id == "2.16.840.1.113883.3.526.3.1174"
        assert model.title == "Beta Blocker Therapy"
        assert model.description == "Medication, Order not done: Beta Blocker Therapy"

    def test_demographic(self, by_id):
        model = by_id[f"PatientCharacteristicBirthdate_{ROOT}"]

        assert model.definition == "patient_characteristic_birthdate"
        assert model.inline_code_list == {"LOINC": ["21112-8"]}

    def test_result_value(self, by_id):
        model = by_id[f"LaboratoryTestPerformedHbA1c_{ROOT}"]

        assert model.value.type == "IVL_PQ"
        assert model.value.low.value == "9"
        assert model.description == "Laboratory Test, Performed: HbA1c Laboratory Test"

    def test_source_variable_becomes_union_of_its_leaf(self, session):
        from hqmf.models import DerivationOperator
        from hqmf.parser import parse_xml

        document = parse_xml(
            '<QualityMeasureDocument xmlns="urn:hl7-org:v3"><component><dataCriteriaSection>'
            '<entry><localVariableName value="qdm_var_Encounters_4"/>'
            '<encounterCriteria classCode="ENC" moodCode="EVN">'
            '<templateId><item root="2.16.840.1.113883.10.20.28.3.23"/></templateId>'
            f'<id root="{ROOT}" extension="qdm_var_Encounters_4"/>'
            '<code valueSet="2.16.840.1.113883.3.666.5.307"/>'
            '</encounterCriteria></entry>'
            '</dataCriteriaSection></component></QualityMeasureDocument>'
        )
        models = {model.id: model for model in session.parse_document(document)}

        grouper = models[f"qdm_var_Encounters_4_{ROOT}"]
        leaf = models[f"GROUP_qdm_var_Encounters_4_{ROOT}"]

        assert session.references[f"qdm_var_Encounters_4_{ROOT}"].is_source_data_criteria is True
        assert grouper.variable is True
        assert grouper.definition == "derived"
        assert grouper.status is None
        assert grouper.derivation_operator == DerivationOperator.UNION
        assert grouper.children_criteria == (f"GROUP_qdm_var_Encounters_4_{ROOT}",)
        assert leaf.variable is False
        assert leaf.definition == "encounter"
        assert leaf.status == "performed"

    def test_fatal_error_aborts_parse(self, session):
        from hqmf.errors import DataCriteriaError
        from hqmf.parser import parse_xml

        document = parse_xml(
            '<QualityMeasureDocument xmlns="urn:hl7-org:v3"><component><dataCriteriaSection>'
            '<entry><observationCriteria classCode="OBS" moodCode="EVN"><id root="1" extension="X"/>'
            '<definition><observationReference><id root="1" extension="Bogus"/></observationReference></definition>'
            '</observationCriteria></entry>'
            '</dataCriteriaSection></component></QualityMeasureDocument>'
        )
        with pytest.raises(DataCriteriaError):
            session.parse_document(document)


class TestExporters:
    """Test JSON export of parsed criteria."""

    def test_export_json(self, models, tmp_path):
        from hqmf.exporters import export_json

        output = tmp_path / "out" / "criteria.json"
        json_str = export_json(models, output)
        data = json.loads(json_str)

        assert output.read_text() == json_str
        assert len(data) == 10
        source = data[f"EncounterPerformedInpatient_{ROOT}"]
        assert source["definition"] == "encounter"
        assert "field_values" not in source

    def test_export_json_with_nulls(self, models):
        from hqmf.exporters import export_json

        data = json.loads(export_json(models, include_nulls=True))
        assert data[f"EncounterPerformedInpatient_{ROOT}"]["field_values"] is None

    def test_summary(self, models):
        from hqmf.exporters import export_json_summary

        summary = export_json_summary(models)

        assert summary["criteria_count"] == 10
        assert summary["definitions"]["encounter"] == 3
        assert summary["definitions"]["derived"] == 2
        assert summary["variables"] == [f"qdm_var_HasDiabetes_3_{ROOT}"]
        assert summary["specific_occurrences"] == {
            f"OccurrenceA_EncounterPerformedInpatient_{ROOT}": "A",
            f"OccurrenceB_EncounterPerformedInpatient_{ROOT}": "B",
        }
