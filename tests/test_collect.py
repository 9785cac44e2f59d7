from survey_form.collect import has_collected_values, missing_required


def test_empty_form_collects_lists_and_server_fields(controller):
    data = controller.collect_form_data()

    assert data["learned_coding"] == []
    assert data["languages"] == []
    assert data["age"] == ""
    # Unchecked radios and empty optional text are left out.
    assert "employment_status" not in data
    assert "field_of_study" not in data
    assert "consent" not in data
    assert not has_collected_values(data)
    assert not controller.has_unsaved_changes()


def test_single_checkbox_is_still_a_list(controller):
    controller.field("learned_coding").check("bootcamp")
    assert controller.collect_form_data()["learned_coding"] == ["bootcamp"]


def test_checked_values_follow_option_order(controller):
    coding = controller.field("learned_coding")
    coding.check("mentorship")
    coding.check("university")
    assert controller.collect_form_data()["learned_coding"] == ["university", "mentorship"]


def test_text_values_are_trimmed(controller):
    controller.field("field_of_study").set_value("  Computer Science ")
    controller.field("employment_status").check("Student")

    data = controller.collect_form_data()
    assert data["field_of_study"] == "Computer Science"
    assert data["employment_status"] == "Student"
    assert controller.has_unsaved_changes()


def test_consent_is_validated_but_never_sent(controller, fill_required):
    fill_required(controller)
    assert controller.field("consent").has_value()
    assert "consent" not in controller.collect_form_data()


def test_collection_does_not_mutate_the_form(controller):
    controller.field("university").set_value(" UZ ")
    controller.collect_form_data()
    assert controller.field("university").value == " UZ "


def test_missing_required():
    assert missing_required({"age": "", "employment_status": "Employed"}, ["age", "employment_status"]) == ["age"]
    assert missing_required({"age": ["18-24"]}, ["age"]) == []


def test_check_required_fields(controller):
    controller.field("age").set_value("18-24")
    assert controller.check_required_fields() == {"missing": ["employment_status"], "present": ["age"]}
