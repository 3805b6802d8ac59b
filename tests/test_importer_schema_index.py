import logging

from crm_app.importer.field_types import MultiSelectBehavior, SingleSelectBehavior
from crm_app.importer.schema_index import FieldDefinition, SqlSchemaReader, build_schema_index
from crm_app.models import FieldType, Organization, db


def _definition(field_id, name, field_type=FieldType.TEXT, options=()):
    return FieldDefinition(id=field_id, display_name=name, field_type=field_type, options=tuple(options))


def test_lookup_matches_normalized_headers():
    index = build_schema_index([_definition(1, "Phone Number", FieldType.PHONE)])

    for header in ("Phone Number", "phone_number", " PHONE-number "):
        assert index.lookup(header).id == 1
    assert "phone number" in index
    assert index.lookup("Fax") is None
    assert index.lookup("") is None
    assert len(index) == 1


def test_duplicate_normalized_names_last_wins_and_records_anomaly(caplog):
    definitions = [
        _definition(1, "Company Name"),
        _definition(2, "company_name"),
    ]

    with caplog.at_level(logging.WARNING):
        index = build_schema_index(definitions)

    assert index.lookup("Company Name").id == 2
    assert len(index.anomalies) == 1
    anomaly = index.anomalies[0]
    assert anomaly.kept_field_id == 2
    assert anomaly.shadowed_field_id == 1
    assert anomaly.as_dict()["key"] == "companyname"
    assert "normalize to the same name" in caplog.text


def test_select_fields_carry_option_maps_keyed_case_insensitively():
    index = build_schema_index(
        [
            _definition(5, "County", FieldType.DROPDOWN, options=["Jackson", " clay ", "JACKSON"]),
            _definition(6, "Services", FieldType.MULTISELECT, options=["Intake"]),
        ]
    )

    county = index.lookup("county")
    assert isinstance(county.behavior, SingleSelectBehavior)
    assert county.options == {"jackson": "Jackson", "clay": "clay"}
    assert isinstance(index.lookup("services").behavior, MultiSelectBehavior)
    assert index.lookup("services").is_select is True


def test_definitions_without_usable_name_are_skipped():
    index = build_schema_index([_definition(1, "  "), _definition(2, "Email", FieldType.EMAIL)])
    assert len(index) == 1
    assert index.anomalies == ()


def test_sql_reader_loads_tenant_fields_and_active_options(tenant, field_factory):
    county = field_factory("County", FieldType.DROPDOWN, options=("Jackson", "Clay", "Platte"))
    field_factory("Email", FieldType.EMAIL)
    field_factory("Referral Source", FieldType.TEXT, module_type="referral")

    platte = next(option for option in county.options if option.option_text == "Platte")
    platte.is_deleted = True
    db.session.commit()

    definitions = SqlSchemaReader(db.session).load_fields(tenant.id, "lead")

    assert [definition.display_name for definition in definitions] == ["County", "Email"]
    assert definitions[0].field_type is FieldType.DROPDOWN
    assert definitions[0].options == ("Jackson", "Clay")


def test_sql_reader_scopes_by_tenant(tenant, field_factory):
    other = Organization(name="Other", slug="other-org")
    db.session.add(other)
    db.session.commit()
    field_factory("Email", FieldType.EMAIL, organization=other)

    assert SqlSchemaReader(db.session).load_fields(tenant.id, "lead") == []
