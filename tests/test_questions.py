import pytest

from rollcall.services.errors import NotFoundError, ValidationError
from rollcall.services.events import EventService
from rollcall.services.questions import QuestionService
from rollcall.services.registrations import RegistrationService


def add_question(session, event_id, **payload):
    payload.setdefault("label", "Régime alimentaire")
    return QuestionService(session).create_question(event_id, payload)


def test_questions_are_listed_in_position_order(db_session, make_event):
    event_id = make_event()
    first = add_question(db_session, event_id, label="Entreprise")
    second = add_question(db_session, event_id, label="Allergies", type="long_text")
    pinned = add_question(db_session, event_id, label="Atelier", position=0,
                          type="select", options=["Matin", "Après-midi"])

    assert first["position"] == 1
    assert second["position"] == 2
    listed = QuestionService(db_session).list_questions(event_id)
    assert [item["id"] for item in listed] == [pinned["id"], first["id"], second["id"]]
    assert listed[0]["options"] == ["Matin", "Après-midi"]
    assert listed[1]["type"] == "short_text"
    assert listed[1]["required"] is False
    assert listed[1]["options"] is None


def test_update_and_delete_question(db_session, make_event):
    event_id = make_event()
    question = add_question(db_session, event_id)
    service = QuestionService(db_session)

    updated = service.update_question(
        question["id"], {"type": "multiselect", "options": [" Végétarien ", "Sans gluten"]}
    )
    assert updated["type"] == "multiselect"
    assert updated["options"] == ["Végétarien", "Sans gluten"]

    relabelled = service.update_question(question["id"], {"label": "Régime", "required": True})
    assert relabelled["options"] == ["Végétarien", "Sans gluten"]
    assert relabelled["required"] is True

    back_to_text = service.update_question(question["id"], {"type": "short_text"})
    assert back_to_text["options"] is None

    assert service.delete_question(question["id"]) == {"ok": True}
    assert service.list_questions(event_id) == []
    with pytest.raises(NotFoundError):
        service.delete_question(question["id"])


def test_unknown_event_or_question_is_not_found(db_session, make_event):
    service = QuestionService(db_session)
    with pytest.raises(NotFoundError):
        service.list_questions(9999)
    with pytest.raises(NotFoundError):
        service.create_question(9999, {"label": "Orpheline"})
    with pytest.raises(NotFoundError):
        service.update_question(9999, {"label": "Fantôme"})


@pytest.mark.parametrize(
    "payload,field",
    [
        ({"label": "  "}, "label"),
        ({"label": "Taille", "type": "dropdown"}, "type"),
        ({"label": "Taille", "type": "select"}, "options"),
        ({"label": "Taille", "type": "select", "options": []}, "options"),
        ({"label": "Taille", "type": "select", "options": ["S", ""]}, "options"),
        ({"label": "Taille", "required": "yes"}, "required"),
        ({"label": "Taille", "position": -1}, "position"),
    ],
)
def test_question_payload_validation(db_session, make_event, payload, field):
    event_id = make_event()
    with pytest.raises(ValidationError) as excinfo:
        QuestionService(db_session).create_question(event_id, payload)
    assert field in excinfo.value.errors


def test_empty_question_update_is_rejected(db_session, make_event):
    question = add_question(db_session, make_event())
    with pytest.raises(ValidationError) as excinfo:
        QuestionService(db_session).update_question(question["id"], {})
    assert "_schema" in excinfo.value.errors


def test_required_answer_is_enforced_on_register(db_session, make_event):
    event_id = make_event(capacity=5)
    question = add_question(db_session, event_id, required=True)
    service = RegistrationService(db_session)

    with pytest.raises(ValidationError) as excinfo:
        service.register(event_id, name="Sans réponse", email="none@example.com")
    assert excinfo.value.errors == {f"answers.{question['id']}": ["Réponse requise."]}

    with pytest.raises(ValidationError):
        service.register(
            event_id,
            name="Blanc",
            email="blank@example.com",
            answers={str(question["id"]): "   "},
        )

    result = service.register(
        event_id,
        name="Complet",
        email="full@example.com",
        answers={question["id"]: "  Végétarien "},
    )
    assert result["status"] == "confirmed"
    assert result["registration"]["answers"] == {str(question["id"]): "Végétarien"}


def test_decline_skips_answer_checks(db_session, make_event):
    event_id = make_event(capacity=5)
    add_question(db_session, event_id, required=True)

    result = RegistrationService(db_session).register(
        event_id, name="Absent", email="absent@example.com", decline=True
    )
    assert result["status"] == "cancelled"


def test_choice_and_checkbox_answers(db_session, make_event):
    event_id = make_event(capacity=5)
    workshop = add_question(
        db_session, event_id, label="Atelier", type="select", options=["Matin", "Soir"]
    )
    topics = add_question(
        db_session,
        event_id,
        label="Sujets",
        type="multiselect",
        options=["Data", "Web", "Cloud"],
        required=True,
    )
    consent = add_question(
        db_session, event_id, label="J'accepte le règlement", type="checkbox", required=True
    )
    service = RegistrationService(db_session)
    keys = {name: str(item["id"]) for name, item in
            (("workshop", workshop), ("topics", topics), ("consent", consent))}

    with pytest.raises(ValidationError) as excinfo:
        service.register(
            event_id,
            name="Curieux",
            email="curious@example.com",
            answers={keys["workshop"]: "Nuit", keys["topics"]: ["Data", "IA"],
                     keys["consent"]: False},
        )
    assert excinfo.value.errors == {
        f"answers.{keys['workshop']}": ["Choix inconnu."],
        f"answers.{keys['topics']}": ["Choix inconnu."],
        f"answers.{keys['consent']}": ["Réponse requise."],
    }

    with pytest.raises(ValidationError) as excinfo:
        service.register(
            event_id,
            name="Mauvais types",
            email="types@example.com",
            answers={keys["topics"]: "Data", keys["consent"]: "oui"},
        )
    assert excinfo.value.errors == {
        f"answers.{keys['topics']}": ["Liste de choix attendue."],
        f"answers.{keys['consent']}": ["Doit être un booléen."],
    }

    result = service.register(
        event_id,
        name="Valide",
        email="valid@example.com",
        answers={keys["topics"]: ["Web", "Cloud"], keys["consent"]: True, "notes": "libre"},
    )
    assert result["registration"]["answers"] == {
        keys["topics"]: ["Web", "Cloud"],
        keys["consent"]: True,
        "notes": "libre",
    }


def test_answer_updates_are_checked(db_session, make_event):
    event_id = make_event(capacity=5)
    question = add_question(db_session, event_id, required=True)
    key = str(question["id"])
    service = RegistrationService(db_session)
    reg = service.register(event_id, name="Modif", email="edit@example.com", answers={key: "A"})

    with pytest.raises(ValidationError) as excinfo:
        service.update(reg["registration_id"], {"answers": {key: ""}})
    assert f"answers.{key}" in excinfo.value.errors
    assert service.get(reg["registration_id"])["answers"] == {key: "A"}

    updated = service.update(reg["registration_id"], {"answers": {key: "B"}})
    assert updated["answers"] == {key: "B"}


def test_copy_event_copies_questions_on_request(db_session, make_event):
    source_id = make_event(title="Forum")
    add_question(db_session, source_id, label="Entreprise", required=True)
    add_question(db_session, source_id, label="Atelier", type="select", options=["A", "B"])
    events = EventService(db_session)

    with_questions = events.copy_event(source_id, {"copy_questions": True})
    without_questions = events.copy_event(source_id, {})

    assert with_questions["questions_copied"] == 2
    copied = QuestionService(db_session).list_questions(with_questions["id"])
    assert [(item["label"], item["required"], item["options"]) for item in copied] == [
        ("Entreprise", True, None),
        ("Atelier", False, ["A", "B"]),
    ]
    assert without_questions["questions_copied"] == 0
    assert QuestionService(db_session).list_questions(without_questions["id"]) == []
    assert len(QuestionService(db_session).list_questions(source_id)) == 2


def test_copy_flags_must_be_booleans(db_session, make_event):
    source_id = make_event()
    with pytest.raises(ValidationError) as excinfo:
        EventService(db_session).copy_event(
            source_id, {"copy_questions": "true", "copy_blurb": 1}
        )
    assert set(excinfo.value.errors) == {"copy_questions", "copy_blurb"}
