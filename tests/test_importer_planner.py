from crm_app.importer.planner import ImportProgress, plan_rows, resolve_display_name
from crm_app.importer.schema_index import FieldDefinition, build_schema_index
from crm_app.models import FieldType

EMAIL, COUNTY, SERVICES, STATUS = 1, 2, 3, 4


def _index():
    return build_schema_index(
        [
            FieldDefinition(id=EMAIL, display_name="Email", field_type=FieldType.EMAIL),
            FieldDefinition(id=COUNTY, display_name="County", field_type=FieldType.DROPDOWN, options=("Jackson",)),
            FieldDefinition(
                id=SERVICES,
                display_name="Services",
                field_type=FieldType.MULTISELECT,
                options=("Intake", "Transport"),
            ),
            FieldDefinition(id=STATUS, display_name="Status", field_type=FieldType.STATUS, options=("New",)),
        ]
    )


def test_resolve_display_name_uses_alias_priority():
    row = {"Org Name": "Second", "Name of Organization": "  First  Choice "}
    assert resolve_display_name(row) == "First Choice"


def test_resolve_display_name_matches_aliases_loosely():
    assert resolve_display_name({"company_name": "Acme"}) == "Acme"


def test_resolve_display_name_falls_back_when_blank():
    assert resolve_display_name({"Company Name": "   ", "Email": "a@example.org"}) == "Untitled Lead"
    assert resolve_display_name({}, fallback="Nameless") == "Nameless"


def test_resolve_display_name_truncates_long_names():
    assert len(resolve_display_name({"Name": "x" * 400})) == 255


def test_plan_rows_one_record_per_row_in_order():
    rows = [
        {"Company Name": "Acme", "Email": "hello@acme.test"},
        {"Email": "solo@example.org"},
        {},
    ]

    plan = plan_rows(rows, _index())

    assert [row.display_name for row in plan.rows] == ["Acme", "Untitled Lead", "Untitled Lead"]
    assert [row.index for row in plan.rows] == [0, 1, 2]
    assert plan.rows[0].values == [(EMAIL, "hello@acme.test")]
    assert plan.rows[2].values == []
    assert plan.rows_processed == 3
    assert plan.value_count == 2


def test_plan_rows_reports_unmatched_and_ignored_columns_once():
    rows = [
        {"Company Name": "Acme", "Fax": "555-0100", "_1": "junk", "Favorite Color": "blue"},
        {"Fax": "555-0101", "_1": "junk"},
    ]

    plan = plan_rows(rows, _index())

    assert plan.unmatched_columns == ("Fax", "Favorite Color")
    assert plan.ignored_columns == ("_1",)
    assert all(row.values == [] for row in plan.rows)


def test_plan_rows_skips_blank_cells_without_reporting():
    plan = plan_rows([{"Email": "   ", "Unknown": ""}], _index())
    assert plan.rows[0].values == []
    assert plan.unmatched_columns == ()


def test_plan_rows_select_values_come_from_option_set():
    rows = [
        {"County": "jackson", "Services": "Intake, Intake, Transport", "Status": "Qualified"},
        {"County": "Platte", "Services": "transport, Legal Aid", "Status": "qualified"},
        {"County": "PLATTE"},
    ]

    plan = plan_rows(rows, _index())

    assert dict(plan.rows[0].values) == {COUNTY: "Jackson", SERVICES: "Intake,Transport", STATUS: "Qualified"}
    assert dict(plan.rows[1].values) == {COUNTY: "Platte", SERVICES: "Transport,Legal Aid", STATUS: "Qualified"}
    assert dict(plan.rows[2].values) == {COUNTY: "Platte"}
    assert plan.new_options == {
        COUNTY: {"platte": "Platte"},
        SERVICES: {"legal aid": "Legal Aid"},
        STATUS: {"qualified": "Qualified"},
    }
    assert plan.option_count == 3


def test_plan_rows_first_header_for_a_field_wins():
    plan = plan_rows([{"Email": "first@example.org", "E-mail": "second@example.org"}], _index())
    assert plan.rows[0].values == [(EMAIL, "first@example.org")]


def test_plan_rows_skip_blank_rows_when_enabled():
    rows = [{"Email": "a@example.org"}, {"Email": " ", "County": None}, None]

    kept = plan_rows(rows, _index(), skip_blank_rows=True)
    assert len(kept.rows) == 1
    assert kept.rows_skipped_blank == 2
    assert kept.rows_processed == 3

    assert len(plan_rows(rows, _index()).rows) == 3


def test_plan_rows_reports_progress_every_interval():
    events: list[ImportProgress] = []
    rows = [{"Email": f"user{i}@example.org"} for i in range(5)]

    plan_rows(rows, _index(), progress_callback=events.append, progress_interval=2)

    assert [(event.phase, event.processed, event.total) for event in events] == [
        ("planning", 2, 5),
        ("planning", 4, 5),
        ("planning", 5, 5),
    ]


def test_plan_rows_empty_batch():
    events = []
    plan = plan_rows([], _index(), progress_callback=events.append)
    assert plan.rows == []
    assert plan.new_options == {}
    assert events == [ImportProgress(phase="planning", processed=0, total=0)]


def test_plan_rows_reports_oversized_options_without_blocking_row():
    rows = [{"Email": "a@example.org", "County": "c" * 300, "Services": "Intake"}]

    plan = plan_rows(rows, _index())

    assert dict(plan.rows[0].values) == {EMAIL: "a@example.org", SERVICES: "Intake"}
    assert plan.rejected_option_columns == ("County",)
    assert plan.new_options == {}
    assert plan.multi_value_fields == frozenset({SERVICES})
