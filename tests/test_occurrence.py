"""
Tests for specific occurrence resolution.
"""

import pytest

ROOT = "2.16.840.1.113883.3.100.1"
ENCOUNTER_PERFORMED = "2.16.840.1.113883.10.20.28.3.23"
SOURCE_ID = f"EncounterPerformedInpatient_{ROOT}"


def encounter(extension, occurrence_of=None, lvn=None, control=None):
    lvn_xml = f'<localVariableName value="{lvn}"/>' if lvn else ""
    occr = ""
    if occurrence_of:
        control_xml = (
            f'<localVariableName controlInformationRoot="{control[0]}" '
            f'controlInformationExtension="{control[1]}"/>'
            if control else ""
        )
        occr = (
            '<outboundRelationship typeCode="OCCR">'
            f'{control_xml}<criteriaReference classCode="ENC" moodCode="EVN">'
            f'<id root="{ROOT}" extension="{occurrence_of}"/></criteriaReference>'
            '</outboundRelationship>'
        )
    return (
        f'{lvn_xml}<encounterCriteria classCode="ENC" moodCode="EVN">'
        f'<templateId><item root="{ENCOUNTER_PERFORMED}"/></templateId>'
        f'<id root="{ROOT}" extension="{extension}"/>'
        '<code valueSet="2.16.840.1.113883.3.666.5.307">'
        '<displayName value="Encounter Inpatient SNOMEDCT Value Set"/></code>'
        f'{occr}</encounterCriteria>'
    )


class TestFindOccurrenceTag:
    """Test the prioritized tag matchers."""

    def test_own_id(self):
        from hqmf.parser import find_occurrence_tag
        tag = find_occurrence_tag(f"OccurrenceB_EncounterPerformedInpatient_{ROOT}", None,
                                  "EncounterPerformedInpatient", False)
        assert tag == "B"

    def test_local_variable_name(self):
        from hqmf.parser import find_occurrence_tag
        tag = find_occurrence_tag("SomethingElse_1", "OccurrenceCofEncounterPerformedInpatient",
                                  "EncounterPerformedInpatient", False)
        assert tag == "C"

    def test_own_id_wins_over_source(self):
        from hqmf.parser import find_occurrence_tag
        tag = find_occurrence_tag("OccurrenceA_OccurrenceD_Encounter_1", None,
                                  "OccurrenceD_Encounter", False)
        assert tag == "A"

    def test_source_id(self):
        from hqmf.parser import find_occurrence_tag
        assert find_occurrence_tag("Unrelated_1", None, "OccurrenceD_Encounter", False) == "D"

    def test_variable_convention(self):
        from hqmf.parser import find_occurrence_tag
        tag = find_occurrence_tag("occBof_qdm_var_Encounters_7_1", None, "Encounters", True)
        assert tag == "B"

    def test_variable_convention_on_name(self):
        from hqmf.parser import find_occurrence_tag
        tag = find_occurrence_tag("qdm_var_Encounters_7_1", "occEof_qdm_var_Encounters", "Other", True)
        assert tag == "E"

    def test_variable_convention_ignored_for_criteria(self):
        from hqmf.parser import find_occurrence_tag
        assert find_occurrence_tag("occBof_qdm_var_Encounters_7_1", None, "Encounters", False) is None

    def test_no_tag(self):
        from hqmf.parser import find_occurrence_tag
        assert find_occurrence_tag("EncounterRepeat_1", None, "EncounterPerformedInpatient", False) is None

    def test_handles_missing_tokens(self):
        from hqmf.parser import find_occurrence_tag
        assert find_occurrence_tag(None, None, None, True) is None


class TestResolveSpecificOccurrence:
    """Test occurrence resolution across a session."""

    def test_first_letter_is_shared(self, make_entry, session):
        session.build(make_entry(encounter("EncounterPerformedInpatient")))
        first = session.build(make_entry(encounter(
            "OccurrenceA_EncounterPerformedInpatient", "EncounterPerformedInpatient")))
        second = session.build(make_entry(encounter(
            "OccurrenceB_EncounterPerformedInpatient", "EncounterPerformedInpatient")))
        third = session.build(make_entry(encounter(
            "EncounterRepeat", "EncounterPerformedInpatient")))

        assert session.occurrences.as_dict() == {SOURCE_ID: "A"}
        assert first.specific_occurrence == "A"
        assert second.specific_occurrence == "B"
        assert third.specific_occurrence == "A"

    def test_occurrence_fields(self, make_entry, session):
        session.build(make_entry(encounter("EncounterPerformedInpatient")))
        criteria = session.build(make_entry(encounter(
            "OccurrenceA_EncounterPerformedInpatient", "EncounterPerformedInpatient")))

        assert criteria.source_data_criteria == SOURCE_ID
        assert criteria.specific_occurrence_const == SOURCE_ID.upper()
        assert criteria.is_source_data_criteria is False

    def test_control_information_takes_precedence(self, make_entry, session):
        session.build(make_entry(encounter("EncounterPerformedInpatient")))
        criteria = session.build(make_entry(encounter(
            "OccurrenceB_EncounterPerformedInpatient", "EncounterPerformedInpatient",
            control=("ENC_INPATIENT", "Z"),
        )))

        assert criteria.specific_occurrence == "Z"
        assert session.occurrences.lookup(SOURCE_ID) == "B"

    def test_unknown_source_is_skipped(self, make_entry, session):
        criteria = session.build(make_entry(encounter(
            "OccurrenceA_EncounterPerformedInpatient", "EncounterPerformedInpatient")))

        assert criteria.specific_occurrence is None
        assert criteria.source_data_criteria is None
        assert len(session.occurrences) == 0

    def test_missing_mapping_fails(self, make_entry, session):
        from hqmf.errors import MissingOccurrenceError

        session.build(make_entry(encounter("EncounterPerformedInpatient")))
        with pytest.raises(MissingOccurrenceError) as exc_info:
            session.build(make_entry(encounter("EncounterRepeat", "EncounterPerformedInpatient")))

        assert "Could not find occurrence mapping" in str(exc_info.value)
        assert exc_info.value.entry_id == f"EncounterRepeat_{ROOT}"

    def test_variable_without_tag_registers_placeholder(self, make_entry, session):
        session.build(make_entry(encounter("EncounterPerformedInpatient")))
        criteria = session.build(make_entry(encounter(
            "qdm_var_Encounter_5", "EncounterPerformedInpatient")))

        assert session.occurrences.lookup(SOURCE_ID) == ""
        assert criteria.specific_occurrence == "A"

    def test_placeholder_is_replaced_by_real_tag(self, make_entry, session):
        session.build(make_entry(encounter("EncounterPerformedInpatient")))
        session.build(make_entry(encounter("qdm_var_Encounter_5", "EncounterPerformedInpatient")))
        session.build(make_entry(encounter(
            "OccurrenceC_EncounterPerformedInpatient", "EncounterPerformedInpatient")))

        assert session.occurrences.lookup(SOURCE_ID) == "C"


class TestOccurrenceRegistry:
    """Test first-writer-wins registration."""

    def test_first_writer_wins(self):
        from hqmf.parser import OccurrenceRegistry

        registry = OccurrenceRegistry()
        assert registry.register("src", "A") == "A"
        assert registry.register("src", "B") == "A"
        assert registry.lookup("src") == "A"

    def test_placeholder_upgrade(self):
        from hqmf.parser import OccurrenceRegistry

        registry = OccurrenceRegistry()
        registry.register("src", "")
        registry.register("src", "")
        assert registry.lookup("src") == ""
        assert registry.register("src", "D") == "D"
        assert registry.register("src", "E") == "D"

    def test_lookup_missing(self):
        from hqmf.parser import OccurrenceRegistry
        assert OccurrenceRegistry().lookup("nope") is None
