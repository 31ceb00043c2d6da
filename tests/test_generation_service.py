import asyncio
import logging

import pytest

from mdcat_generator.core.ai_services import AIService
from mdcat_generator.core.config import config
from mdcat_generator.core.errors import EmptyResultError, UpstreamServiceError
from mdcat_generator.models.generation import GenerationParams, TestFormat, Difficulty
from mdcat_generator.services import generation_service
from mdcat_generator.services.generation_service import GenerationService, get_generation_service


class RecordingAIService(AIService):
    """Returns ``per_call`` valid questions per call and records every call"""

    def __init__(self, make_question, per_call=3, fail_on=()):
        super().__init__(use_dummy=True)
        self.make_question = make_question
        self.per_call = per_call
        self.fail_on = set(fail_on)
        self.calls = []

    async def generate_with_retries(self, prompt, max_attempts=None, year_window=None):
        self.calls.append({"prompt": prompt, "max_attempts": max_attempts, "year_window": year_window})
        if len(self.calls) in self.fail_on:
            raise UpstreamServiceError("model unavailable")
        return [
            self.make_question(question=f"Generated question number {len(self.calls)}.{i}")
            for i in range(self.per_call)
        ]


def run(coro):
    return asyncio.run(coro)


def test_full_test_above_threshold_calls_each_subject(make_question):
    ai = RecordingAIService(make_question, per_call=25)
    service = GenerationService(ai)

    questions = run(service.generate_test(GenerationParams(TestFormat.FULL, 50)))

    assert len(ai.calls) == 5
    assert all(call["max_attempts"] == config.GENERATION_SUBCALL_RETRIES for call in ai.calls)
    assert "Generate questions for Biology subject ONLY. ALL 23 questions" in ai.calls[0]["prompt"]
    assert "Generate questions for Logical Reasoning subject ONLY. ALL 2 questions" in ai.calls[4]["prompt"]

    assert len(questions) == 50
    assert [q["id"] for q in questions] == list(range(1, 51))
    assert service.build_metadata(
        GenerationParams(TestFormat.FULL, 50), questions, 0
    )["subjectDistribution"] == {
        "Biology": 23, "Chemistry": 13, "Physics": 10, "English": 2, "Logical Reasoning": 2
    }


def test_full_test_tolerates_failed_subject(make_question):
    ai = RecordingAIService(make_question, per_call=25, fail_on={2})
    service = GenerationService(ai)

    questions = run(service.generate_test(GenerationParams(TestFormat.FULL, 50)))

    assert len(ai.calls) == 5
    assert len(questions) == 37
    assert "Chemistry" not in {q["subject"] for q in questions}


def test_full_test_at_threshold_is_single_call(make_question):
    ai = RecordingAIService(make_question, per_call=3)
    run(GenerationService(ai).generate_test(GenerationParams(TestFormat.FULL, 30)))

    assert len(ai.calls) == 1
    assert ai.calls[0]["max_attempts"] is None
    assert "- Biology: EXACTLY 14 questions" in ai.calls[0]["prompt"]


def test_subject_test_is_single_call(make_question):
    ai = RecordingAIService(make_question)
    params = GenerationParams(TestFormat.SUBJECT, 10, selected_subject="biology")

    run(GenerationService(ai).generate_test(params))

    assert len(ai.calls) == 1
    assert "Generate questions for Biology subject ONLY" in ai.calls[0]["prompt"]


def test_topic_test_is_single_call_for_any_count(make_question):
    ai = RecordingAIService(make_question)
    params = GenerationParams(TestFormat.TOPIC, 100, topic="Enzymes")

    run(GenerationService(ai).generate_test(params))

    assert len(ai.calls) == 1


def test_large_subject_test_is_batched_and_truncated(make_question):
    ai = RecordingAIService(make_question, per_call=25)
    params = GenerationParams(TestFormat.SUBJECT, 60, selected_subject="physics")

    candidates = run(GenerationService(ai).generate_questions(params))

    # batch size min(30, ceil(60 / 3)) = 20; the third batch tops up the shortfall
    assert len(ai.calls) == 3
    assert "ALL 20 questions" in ai.calls[0]["prompt"]
    assert "ALL 10 questions" in ai.calls[2]["prompt"]
    assert len(candidates) == 60


def test_batches_stop_once_count_is_reached(make_question):
    ai = RecordingAIService(make_question, per_call=30)
    params = GenerationParams(TestFormat.SUBJECT, 60, selected_subject="physics")

    candidates = run(GenerationService(ai).generate_questions(params))

    assert len(ai.calls) == 2
    assert len(candidates) == 60


def test_batches_tolerate_failed_batch(make_question):
    ai = RecordingAIService(make_question, per_call=20, fail_on={1})
    params = GenerationParams(TestFormat.SUBJECT, 60, selected_subject="physics")

    candidates = run(GenerationService(ai).generate_questions(params))

    assert len(ai.calls) == 3
    assert len(candidates) == 40


def test_year_window_reaches_model_calls(make_question):
    ai = RecordingAIService(make_question)
    params = GenerationParams(TestFormat.FULL, 10, year_range="2010s")

    run(GenerationService(ai).generate_test(params))

    assert ai.calls[0]["year_window"].start == 2010
    assert ai.calls[0]["year_window"].end == 2019


def test_no_valid_questions_raises_empty_result(make_question):
    ai = RecordingAIService(lambda **kw: make_question(answer="Z", **kw))

    with pytest.raises(EmptyResultError) as exc_info:
        run(GenerationService(ai).generate_test(GenerationParams(TestFormat.FULL, 5)))

    assert exc_info.value.status_code == 500


def test_all_subjects_failing_raises_empty_result(make_question):
    ai = RecordingAIService(make_question, fail_on={1, 2, 3, 4, 5})

    with pytest.raises(EmptyResultError):
        run(GenerationService(ai).generate_test(GenerationParams(TestFormat.FULL, 40)))


def test_single_call_errors_propagate(make_question):
    ai = RecordingAIService(make_question, fail_on={1})

    with pytest.raises(UpstreamServiceError):
        run(GenerationService(ai).generate_test(GenerationParams(TestFormat.FULL, 5)))


def test_scope_adherence_is_logged_only(make_question, caplog):
    questions = [make_question(subject="Chemistry") for _ in range(3)]
    params = GenerationParams(TestFormat.SUBJECT, 3, selected_subject="biology")

    with caplog.at_level(logging.WARNING):
        ratio = GenerationService.check_scope_adherence(params, questions)

    assert ratio == 0.0
    assert 'match subject "Biology"' in caplog.text


def test_scope_adherence_for_topic(make_question):
    questions = [make_question(topic="Enzymes (Inhibitors)"), make_question(topic="Genetics")]
    params = GenerationParams(TestFormat.TOPIC, 2, topic="enzymes")

    assert GenerationService.check_scope_adherence(params, questions) == pytest.approx(0.5)
    assert GenerationService.check_scope_adherence(GenerationParams(TestFormat.FULL, 2), questions) is None


def test_metadata_fields(make_question):
    params = GenerationParams(
        TestFormat.SUBJECT, 2, selected_subject="biology",
        source="UHS", year_range={"start": 2015, "end": 2016}, difficulty=Difficulty.EASY
    )
    metadata = GenerationService.build_metadata(params, [make_question()], 1234)

    assert metadata == {
        "generated": 1,
        "requested": 2,
        "testFormat": "subject-test",
        "selectedSubject": "biology",
        "topic": None,
        "source": "UHS",
        "difficulty": "easy",
        "yearRange": {"start": 2015, "end": 2016},
        "responseTime": 1234,
        "subjectDistribution": {"Biology": 1},
    }


def test_offline_service_returns_stub_questions():
    questions = run(get_generation_service().generate_test(GenerationParams(TestFormat.FULL, 10)))

    assert 1 <= len(questions) <= 10
    assert all(q["subject"] == "Biology" for q in questions)


@pytest.fixture
def recorded_sleeps(monkeypatch):
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    monkeypatch.setattr(generation_service.asyncio, "sleep", fake_sleep)
    return sleeps


def test_subject_calls_are_paced(make_question, monkeypatch, recorded_sleeps):
    monkeypatch.setattr(config, "SUBJECT_DELAY_SECONDS", 1.0)
    ai = RecordingAIService(make_question, per_call=25)

    run(GenerationService(ai).generate_questions(GenerationParams(TestFormat.FULL, 50)))

    # one pause between each pair of subjects, none after the last
    assert recorded_sleeps == [1.0] * 4


def test_batches_are_paced(make_question, monkeypatch, recorded_sleeps):
    monkeypatch.setattr(config, "BATCH_DELAY_SECONDS", 2.0)
    ai = RecordingAIService(make_question, per_call=10)
    params = GenerationParams(TestFormat.SUBJECT, 60, selected_subject="physics")

    candidates = run(GenerationService(ai).generate_questions(params))

    assert len(ai.calls) == 3
    assert len(candidates) == 30
    assert recorded_sleeps == [2.0, 2.0]


def test_unofficial_topic_is_logged(make_question, caplog):
    ai = RecordingAIService(make_question)
    params = GenerationParams(TestFormat.TOPIC, 3, topic="Medieval Poetry")

    with caplog.at_level(logging.WARNING):
        run(GenerationService(ai).generate_questions(params))

    assert 'Topic "Medieval Poetry" is not in the official PM&DC syllabus' in caplog.text
    assert len(ai.calls) == 1


def test_official_topic_is_not_flagged(make_question, caplog):
    ai = RecordingAIService(make_question)

    with caplog.at_level(logging.WARNING):
        run(GenerationService(ai).generate_questions(GenerationParams(TestFormat.TOPIC, 3, topic="Enzymes")))

    assert "not in the official" not in caplog.text
