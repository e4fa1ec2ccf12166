from proctored_cbt.models.question_model import CodingProblem
from proctored_cbt.models.session_state import AnswerStore


def test_single_choice_always_holds_latest_choice_only():
    store = AnswerStore()
    for option_id in [11, 12, 12, 11, 13]:
        store.set_mcq_selection(1, option_id, multiple=False)
        assert store.selection(1) == [option_id]


def test_multiple_choice_toggle_restores_membership():
    store = AnswerStore()
    store.set_mcq_selection(5, 51, multiple=True)

    store.set_mcq_selection(5, 52, multiple=True)
    assert store.selection(5) == [51, 52]
    store.set_mcq_selection(5, 52, multiple=True)
    assert store.selection(5) == [51]

    store.set_mcq_selection(5, 51, multiple=True)
    store.set_mcq_selection(5, 51, multiple=True)
    assert store.selection(5) == [51]


def test_answers_payload_is_a_copy():
    store = AnswerStore()
    store.set_mcq_selection(1, 11, multiple=False)
    payload = store.answers_payload()
    payload[1].append(99)
    assert store.selection(1) == [11]


def test_code_and_shared_language():
    store = AnswerStore()
    store.set_code(201, "print(1)")
    store.set_code(201, "print(2)")
    store.set_language(3)

    problems = [CodingProblem(problem_id=201, title="a"), CodingProblem(problem_id=202, title="b")]
    solutions = store.solutions(problems, fallback_language_id=1)

    assert [(s.problem_id, s.language_id, s.code) for s in solutions] == [
        (201, 3, "print(2)"),
        (202, 3, ""),
    ]


def test_solutions_language_fallback_chain():
    problems = [CodingProblem(problem_id=1, title="a")]
    assert AnswerStore().solutions(problems, fallback_language_id=7)[0].language_id == 7
    assert AnswerStore().solutions(problems)[0].language_id == 0
