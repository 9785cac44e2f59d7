from survey_form.config import FormConfig
from survey_form.controller import build_controller
from survey_form.view import NoticeLevel


def test_check_past_cap_is_reverted_with_warning(controller):
    vc = controller.field("version_control")
    vc.check("GitHub")
    vc.check("GitLab")
    vc.check("Bitbucket")

    assert vc.checked == ["GitHub", "GitLab"]
    warnings = controller.view.notices_at(NoticeLevel.WARNING)
    assert [n.message for n in warnings] == ["Maximum 2 selections allowed"]

    counter = controller.caps.counters["version_control"]
    assert counter.text == "2/2"
    assert counter.over_limit


def test_cap_warning_clears_once_back_under(controller):
    vc = controller.field("version_control")
    vc.check("GitHub")
    vc.check("GitLab")
    vc.check("None")
    vc.uncheck("GitLab")

    counter = controller.caps.counters["version_control"]
    assert vc.checked == ["GitHub"]
    assert counter.text == "1/2"
    assert not counter.over_limit


def test_groups_without_cap_are_unbounded(client, storage, clock):
    controller = build_controller(
        FormConfig(max_selections={"databases": 1}), storage=storage, client=client, clock=clock
    )
    langs = controller.field("languages")
    for value in ("Python", "Go", "Rust", "SQL", "Dart", "Java", "PHP"):
        langs.check(value)
    assert langs.checked_count == 7

    dbs = controller.field("databases")
    dbs.check("PostgreSQL")
    dbs.check("Redis")
    assert dbs.checked == ["PostgreSQL"]


def test_cap_on_unknown_group_is_ignored(client, storage, clock):
    controller = build_controller(
        FormConfig(max_selections={"not_a_group": 2, "age": 1}), storage=storage, client=client, clock=clock
    )
    assert controller.caps.limits == {}


def test_validation_reports_group_over_cap(controller, fill_required):
    fill_required(controller)
    # Bypass the change path to simulate a group already over its cap.
    vc = controller.field("version_control")
    for value in ("GitHub", "GitLab", "Bitbucket"):
        vc.set_checked(value, True, notify=False)

    result = controller.validate_form()
    assert not result.is_valid
    assert result.errors[-1].field == "version_control"
    assert result.errors[-1].message == "Maximum 2 selections allowed"
