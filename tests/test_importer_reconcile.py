from crm_app.importer.planner import ImportPlan
from crm_app.importer.reconcile import OptionCreateRequest, reconcile_options


def test_reconcile_flattens_accumulator_per_field():
    requests = reconcile_options({7: {"platte": "Platte", "clay": "Clay"}, 9: {"legal aid": "Legal  Aid"}})

    assert requests == [
        OptionCreateRequest(field_id=7, option_text="Platte", option_key="platte"),
        OptionCreateRequest(field_id=7, option_text="Clay", option_key="clay"),
        OptionCreateRequest(field_id=9, option_text="Legal Aid", option_key="legal aid"),
    ]


def test_reconcile_accepts_a_plan():
    plan = ImportPlan(
        rows=[],
        new_options={3: {"new": "New"}},
        unmatched_columns=(),
        ignored_columns=(),
        rows_processed=0,
    )
    assert [request.option_text for request in reconcile_options(plan)] == ["New"]


def test_reconcile_drops_duplicate_and_blank_options():
    requests = reconcile_options({7: {"platte": "Platte", "PLATTE": "PLATTE", "": "  "}})
    assert [(request.field_id, request.option_text) for request in requests] == [(7, "Platte")]


def test_reconcile_empty():
    assert reconcile_options({}) == []


def test_request_as_row_is_insertable():
    row = OptionCreateRequest(field_id=1, option_text="Intake", option_key="intake").as_row()
    assert row == {"field_id": 1, "option_text": "Intake", "option_key": "intake", "is_deleted": False}
