"""
Data criteria builder.

One DataCriteria is built per dataCriteriaSection entry. Construction reads
the entry in a fixed order because later steps consult earlier results and
the criteria already registered in the session.
"""

from __future__ import annotations

import copy
import logging
import re

from lxml import etree

from hqmf.models import (
    DERIVED,
    PATIENT_CHARACTERISTIC_PREFIX,
    TRANSFER_DEFINITIONS,
    DataCriteriaModel,
    DerivationOperator,
    FieldValue,
    SubsetOperator,
    TemporalReference,
    Value,
)
from hqmf.parser.classifier import (
    extract_template_ids,
    extract_type_from_definition,
    extract_type_from_template_id,
)
from hqmf.parser.context import ParseContext
from hqmf.parser.derivation import (
    detect_verbose_reference,
    extract_derivation_operator,
    group_id,
    handle_specific_variables,
    set_intersection,
)
from hqmf.parser.nodes import CRITERIA_GLOB, attr_val, composite_id, first, xpath
from hqmf.parser.occurrence import resolve_specific_occurrence
from hqmf.parser.references import (
    extract_child_criteria,
    extract_subset_operators,
    extract_temporal_references,
    parse_typed_reference,
)
from hqmf.parser.tokens import normalize
from hqmf.parser.values import coded_for_code_list, parse_coded, parse_value

logger = logging.getLogger(__name__)

DEFAULT_CODE_LIST_XPATH = "./*/cda:code"
REASON = "REASON"
NEGATION_REASON_CODE = "410666004"

_QDM_VARIABLE = re.compile(r".*qdm_var_")
_VALUE_SET_TITLE = re.compile(r"(.*) \w+ [Vv]alue [Ss]et")
_GROUPED_VARIABLE_NAME = re.compile(r"^(SATISFIES ALL|SATISFIES ANY|UNION|INTERSECTION)")


class DataCriteria:
    """
    Mutable working entity for one criteria entry.

    Registered in the session as soon as it is built, corrected once by the
    patch pass, then exported with to_model().
    """

    def __init__(self, entry: etree._Element, context: ParseContext | None = None):
        self.entry = entry
        self.context = context or ParseContext()

        self.do_not_group = False
        self.verbose_reference = False
        self.is_source_data_criteria = False

        self.definition: str | None = None
        self.negation = False
        self.negation_code_list_id: str | None = None
        self.value: Value | None = None
        self.specific_occurrence: str | None = None
        self.specific_occurrence_const: str | None = None
        self.source_data_criteria: str | None = None
        self.source_data_criteria_extension: str | None = None
        self.source_data_criteria_root: str | None = None
        self._title: str | None = None
        self._code_list_id: str | None = None

        self.template_ids = extract_template_ids(entry)
        self.local_variable_name = attr_val(entry, "./cda:localVariableName/@value")
        self.status = attr_val(entry, "./*/cda:statusCode/@code")
        self.id = composite_id(
            attr_val(entry, "./*/cda:id/@extension"),
            attr_val(entry, "./*/cda:id/@root"),
        )
        self.description = self._extract_description()
        self.verbose_reference = detect_verbose_reference(self)
        self.code_list_xpath = DEFAULT_CODE_LIST_XPATH

        self._extract_negation()
        resolve_specific_occurrence(self)

        self.temporal_references: list[TemporalReference] = extract_temporal_references(entry)
        self.derivation_operator = extract_derivation_operator(entry)
        self.field_values: dict[str, FieldValue] = self._extract_field_values()
        self.children_criteria: list[str] = extract_child_criteria(entry)
        self.comments: list[str] = [
            str(c) for c in xpath(
                entry, f"./{CRITERIA_GLOB}/cda:text/cda:xml/cda:qdmUserComments/cda:item/text()"
            )
        ]
        self.variable = self.is_variable()
        self.subset_operators: list[SubsetOperator] = extract_subset_operators(entry)

        if not extract_type_from_template_id(self):
            extract_type_from_definition(self)

        self._set_code_list_path_and_result_value()

        self.id = normalize(self.id)
        self.children_criteria = [normalize(child) for child in self.children_criteria]
        self.source_data_criteria = normalize(self.source_data_criteria)
        self.specific_occurrence_const = normalize(self.specific_occurrence_const)

        set_intersection(self)
        handle_specific_variables(self)

    def __repr__(self) -> str:
        return f"DataCriteria(id={self.id!r}, definition={self.definition!r})"

    # =========================================================================
    # Derived attributes
    # =========================================================================

    @property
    def title(self) -> str:
        """Explicit title, then the code's display name, description, id."""
        return (
            self._title
            or attr_val(self.entry, f"{self.code_list_xpath}/cda:displayName/@value")
            or self.description
            or self.id
        )

    @title.setter
    def title(self, value: str | None) -> None:
        self._title = value

    @property
    def code_list_id(self) -> str | None:
        return self._code_list_id or attr_val(self.entry, f"{self.code_list_xpath}/@valueSet")

    @code_list_id.setter
    def code_list_id(self, value: str | None) -> None:
        self._code_list_id = value

    @property
    def inline_code_list(self) -> dict[str, list[str]] | None:
        """``{code system name: [code]}`` for criteria coded inline."""
        code_system = attr_val(self.entry, f"{self.code_list_xpath}/@codeSystem")
        if code_system:
            code_system_name = self.context.knowledge.code_system_name(code_system)
        else:
            code_system_name = attr_val(self.entry, f"{self.code_list_xpath}/@codeSystemName")
        code = attr_val(self.entry, f"{self.code_list_xpath}/@code")
        if code_system_name and code:
            return {code_system_name: [code]}
        return None

    def is_variable(self) -> bool:
        """Whether the local variable name or id marks this as a qdm variable."""
        if self.local_variable_name and _QDM_VARIABLE.match(self.local_variable_name):
            return True
        return bool(self.id and _QDM_VARIABLE.match(self.id))

    # =========================================================================
    # Extraction
    # =========================================================================

    def _extract_description(self) -> str | None:
        """
        Human readable description.

        Variables use the encoded variable name from localVariableName when
        there is one; everything else uses the criteria text or title.
        """
        extension = attr_val(self.entry, f"./{CRITERIA_GLOB}/cda:id/@extension")
        if not self.is_variable():
            return (
                attr_val(self.entry, f"./{CRITERIA_GLOB}/cda:text/@value")
                or attr_val(self.entry, f"./{CRITERIA_GLOB}/cda:title/@value")
                or extension
            )

        encoded_name = self.local_variable_name
        if encoded_name and encoded_name.startswith("qdm_var_"):
            encoded_name = encoded_name[len("qdm_var_"):]
            encoded_name = re.sub(r"Occurrence[A-Z]of", "", encoded_name)
            # Older measures carry no variable name hint; keep their last token
            if not _GROUPED_VARIABLE_NAME.match(encoded_name):
                encoded_name = re.sub(r"_[^_]+$", "", encoded_name)
            return encoded_name
        if encoded_name and encoded_name.startswith("localVar_"):
            return encoded_name[len("localVar_"):]
        return extension

    def _extract_negation(self) -> None:
        self.negation = attr_val(self.entry, "./*/@actionNegationInd") == "true"
        if self.negation:
            self.negation_code_list_id = attr_val(
                self.entry,
                f"./*/cda:outboundRelationship/*/cda:code[@code='{NEGATION_REASON_CODE}']/../cda:value/@valueSet",
            )
        else:
            self.negation_code_list_id = None

    def _extract_field_values(self) -> dict[str, FieldValue]:
        knowledge = self.context.knowledge
        fields: dict[str, FieldValue] = {}

        for field in xpath(self.entry, "./*/cda:outboundRelationship[*/cda:code]"):
            key = knowledge.field_for_code(attr_val(field, "./*/cda:code/@code"))
            if key is None or (self.negation and key == REASON):
                continue
            value = parse_value(field, "./*/cda:value")
            if value is None:
                value = parse_value(field, "./*/cda:effectiveTime")
            if value is not None:
                fields[key] = value

        # Facility location and friends hang off a participation instead
        for field in xpath(self.entry, "./*/cda:outboundRelationship[*/cda:participation]"):
            key = knowledge.field_for_code(attr_val(field, "./*/cda:participation/cda:role/@classCode"))
            code = first(field, "./*/cda:participation/cda:role/cda:code")
            if key is not None and code is not None:
                fields[key] = parse_coded(code)

        fulfills = first(self.entry, "./*/cda:outboundRelationship[@typeCode='FLFS']/cda:criteriaReference")
        if fulfills is not None:
            fields["FLFS"] = parse_typed_reference(fulfills)

        return fields

    def _source_template_ids(self) -> list[str]:
        """Template ids of the source criteria, looked up across the document."""
        return [
            str(t) for t in xpath(
                self.entry.getroottree().getroot(),
                "//cda:id[@root=$root and @extension=$extension]/../cda:templateId/cda:item/@root",
                root=self.source_data_criteria_root or "",
                extension=self.source_data_criteria_extension or "",
            )
        ]

    def _set_code_list_path_and_result_value(self) -> None:
        knowledge = self.context.knowledge

        if not self.template_ids and self.specific_occurrence:
            source_templates = self._source_template_ids()
            if source_templates:
                mapping = knowledge.value_set_path_for_template(source_templates[0])
                if mapping is not None and mapping.result_path:
                    self.value = parse_value(self.entry, mapping.result_path)
            return

        for template_id in self.template_ids:
            mapping = knowledge.value_set_path_for_template(template_id)
            if mapping is None or not mapping.valueset_path:
                continue
            if first(self.entry, mapping.valueset_path) is None:
                continue
            self.code_list_xpath = mapping.valueset_path
            if mapping.result_path:
                self.value = parse_value(self.entry, mapping.result_path)

    # =========================================================================
    # Copying
    # =========================================================================

    def clone(self) -> DataCriteria:
        """Independent copy sharing the entry and session."""
        duplicate = copy.copy(self)
        duplicate.children_criteria = list(self.children_criteria)
        duplicate.temporal_references = list(self.temporal_references)
        duplicate.subset_operators = list(self.subset_operators)
        duplicate.field_values = dict(self.field_values)
        duplicate.comments = list(self.comments)
        return duplicate

    def duplicate_child_info(self, child: DataCriteria) -> None:
        """Fill anything still unset from a referenced criteria."""
        self._title = self._title or child.title
        self.definition = self.definition or child.definition
        self.status = self.status or child.status
        self._code_list_id = self._code_list_id or child.code_list_id
        if not self.temporal_references:
            self.temporal_references = list(child.temporal_references)
        if not self.subset_operators:
            self.subset_operators = list(child.subset_operators)
        self.variable = self.variable or child.variable
        if self.value is None:
            self.value = child.value

    def as_grouper(self) -> DataCriteria:
        """Turn this criteria into a UNION over its own GROUP_ leaf."""
        self.field_values = {}
        self.temporal_references = []
        self.subset_operators = []
        self.derivation_operator = DerivationOperator.UNION
        self.definition = DERIVED
        self.status = None
        self.children_criteria = [group_id(self.id)]
        self.source_data_criteria = self.id
        return self

    # =========================================================================
    # Export
    # =========================================================================

    def to_model(self) -> DataCriteriaModel:
        """
        Immutable export of this criteria.

        Does not modify the builder, so it may be called repeatedly.
        """
        title = self.title
        description = self.description
        code_list_id = self.code_list_id
        field_values = dict(self.field_values)

        # Transfers carry their code list as a field
        if self.definition in TRANSFER_DEFINITIONS:
            field_code_list_id = code_list_id or attr_val(
                self.entry,
                f"./{CRITERIA_GLOB}/cda:outboundRelationship/{CRITERIA_GLOB}/cda:value/@valueSet",
            )
            code_list_id = None
            field_values[self.definition.upper()] = coded_for_code_list(field_code_list_id, title)

        if not (self.variable or self.derivation_operator):
            exact_desc = " ".join(title.split()[:-3])
            if (self.definition or "").startswith(PATIENT_CHARACTERISTIC_PREFIX) and not title.endswith("Value Set"):
                exact_desc = title
            match = _VALUE_SET_TITLE.match(title)
            if match:
                title = match.group(1)
            description = f"{description or ''}: {exact_desc}"

        if self.derivation_operator:
            code_list_id = None

        return DataCriteriaModel(
            id=self.id,
            title=title,
            description=description,
            code_list_id=code_list_id,
            definition=self.definition,
            status=self.status,
            negation=self.negation,
            negation_code_list_id=self.negation_code_list_id,
            value=self.value,
            field_values=field_values or None,
            inline_code_list=self.inline_code_list,
            temporal_references=tuple(self.temporal_references),
            subset_operators=tuple(self.subset_operators),
            children_criteria=tuple(self.children_criteria) or None,
            derivation_operator=self.derivation_operator,
            specific_occurrence=self.specific_occurrence,
            specific_occurrence_const=self.specific_occurrence_const,
            source_data_criteria=self.source_data_criteria,
            comments=tuple(self.comments) or None,
            variable=self.variable,
        )
