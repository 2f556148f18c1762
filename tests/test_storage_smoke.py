"""Smoke tests for the JSON document stores."""

import fcntl
from datetime import datetime, timedelta

import pytest
from conftest import make_question

from adaptive_practice.errors import AttemptNotFoundError, IdentityError, StoreUnavailableError
from adaptive_practice.models.question import Attempt
from adaptive_practice.models.skills import CEFRLevel, QuestionType, SkillArea
from adaptive_practice.storage.attempts import AttemptStore
from adaptive_practice.storage.documents import DocumentStore, validate_user_id
from adaptive_practice.storage.questions import QuestionCatalog
from adaptive_practice.storage.subscriptions import SubscriptionStore


def _attempt(attempt_id: str, **kwargs) -> Attempt:
    fields = dict(
        id=attempt_id,
        session_id="s1",
        question_id=f"q-{attempt_id}",
        user_id="learner",
        question_type=QuestionType.LISTEN_THEN_SPEAK,
    )
    fields.update(kwargs)
    return Attempt(**fields)


class TestValidateUserId:
    @pytest.mark.parametrize("user_id", ["abc", "user_42", "a.b@example.com", "auth0:123"])
    def test_accepts_safe_ids(self, user_id):
        assert validate_user_id(user_id) == user_id

    @pytest.mark.parametrize("user_id", [None, "", "..", "../etc/passwd", "a/b", "x" * 129])
    def test_rejects_unsafe_ids(self, user_id):
        with pytest.raises(IdentityError):
            validate_user_id(user_id)


class TestDocumentStore:
    def test_read_missing_returns_default(self, tmp_path):
        store = DocumentStore(tmp_path)
        assert store.read("nobody", lambda: {"items": []}) == {"items": []}

    def test_transaction_persists_changes(self, tmp_path):
        store = DocumentStore(tmp_path)
        with store.transaction("doc") as data:
            data["count"] = 1
        assert store.read("doc") == {"count": 1}

    def test_transaction_skips_write_when_unchanged(self, tmp_path):
        store = DocumentStore(tmp_path)
        with store.transaction("doc") as data:
            data["count"] = 1
        before = store.path_for("doc").stat().st_mtime_ns
        with store.transaction("doc") as data:
            data["count"] = 1
        assert store.path_for("doc").stat().st_mtime_ns == before

    def test_transaction_discards_on_error(self, tmp_path):
        store = DocumentStore(tmp_path)
        with pytest.raises(RuntimeError):
            with store.transaction("doc") as data:
                data["count"] = 99
                raise RuntimeError("abort")
        assert not store.path_for("doc").exists()

    def test_lock_timeout_raises_store_unavailable(self, tmp_path):
        store = DocumentStore(tmp_path, lock_timeout=0.1)
        with open(tmp_path / "busy.json.lock", "a") as holder:
            fcntl.flock(holder, fcntl.LOCK_EX)
            with pytest.raises(StoreUnavailableError):
                store.read("busy")
            fcntl.flock(holder, fcntl.LOCK_UN)

    def test_corrupt_document_raises_store_unavailable(self, tmp_path):
        store = DocumentStore(tmp_path)
        store.path_for("broken").write_text("{not json")
        with pytest.raises(StoreUnavailableError):
            store.read("broken")

    def test_delete(self, tmp_path):
        store = DocumentStore(tmp_path)
        with store.transaction("doc") as data:
            data["x"] = 1
        assert store.delete("doc") is True
        assert store.delete("doc") is False


class TestAttemptStore:
    def test_append_is_idempotent(self, tmp_path):
        store = AttemptStore(tmp_path)
        _, created = store.append(_attempt("a1"))
        _, again = store.append(_attempt("a1", transcript="changed"))
        assert created is True
        assert again is False
        assert store.count("learner") == 1

    def test_grade_reports_first_grading_only(self, tmp_path):
        store = AttemptStore(tmp_path)
        store.append(_attempt("a1"))
        graded, first = store.grade("learner", "a1", 80, feedback="good")
        _, second = store.grade("learner", "a1", 85)
        assert first is True
        assert second is False
        assert graded.score == 80
        assert graded.feedback == "good"

    def test_grade_missing_attempt(self, tmp_path):
        store = AttemptStore(tmp_path)
        with pytest.raises(AttemptNotFoundError):
            store.grade("learner", "missing", 50)

    def test_apply_once_runs_only_for_graded_attempts(self, tmp_path):
        store = AttemptStore(tmp_path)
        store.append(_attempt("pending"))
        store.append(_attempt("graded", score=80))
        calls = []
        assert store.apply_once("learner", "pending", calls.append) is None
        store.apply_once("learner", "graded", lambda a: calls.append(a.id) or "moved")
        assert store.apply_once("learner", "graded", calls.append) is None
        assert calls == ["graded"]

    def test_apply_once_retries_after_failure(self, tmp_path):
        store = AttemptStore(tmp_path)
        store.append(_attempt("graded", score=80))

        def broken(attempt):
            raise StoreUnavailableError("down")

        with pytest.raises(StoreUnavailableError):
            store.apply_once("learner", "graded", broken)
        assert store.apply_once("learner", "graded", lambda a: "moved") == "moved"

    def test_append_clears_applied_marker(self, tmp_path):
        store = AttemptStore(tmp_path)
        stored, _ = store.append(_attempt("graded", score=80, level_applied=True))
        assert stored.level_applied is False
        assert store.apply_once("learner", "graded", lambda a: "moved") == "moved"

    def test_recent_question_ids_filters_by_skill_and_window(self, tmp_path):
        store = AttemptStore(tmp_path)
        now = datetime.now()
        store.append(_attempt("fresh"))
        store.append(_attempt("stale", attempted_at=now - timedelta(days=10)))
        store.append(_attempt("other", question_type=QuestionType.READ_AND_SELECT))
        ids = store.recent_question_ids("learner", SkillArea.SPEAKING, now - timedelta(days=7))
        assert ids == ["q-fresh"]

    def test_scored_history_skips_ungraded(self, tmp_path):
        store = AttemptStore(tmp_path)
        store.append(_attempt("graded", score=60))
        store.append(_attempt("pending"))
        history = store.scored_history("learner")
        assert history[SkillArea.SPEAKING] == [60]
        assert history[SkillArea.READING] == []


class TestQuestionCatalog:
    def test_find_prefers_least_served(self, tmp_path):
        catalog = QuestionCatalog(tmp_path)
        lts = QuestionType.LISTEN_THEN_SPEAK
        catalog.add_many([make_question(lts, question_id="worn"), make_question(lts, question_id="new")])
        claimed = catalog.claim(lts, CEFRLevel.A1, exclude={"new"})
        assert claimed.times_served == 1
        found = catalog.find(lts, CEFRLevel.A1)
        assert [q.id for q in found] == ["new", "worn"]
        assert catalog.get("worn").times_served == 1
        assert catalog.count(lts, CEFRLevel.A1) == 1

    def test_claim_on_empty_key_writes_nothing(self, tmp_path):
        catalog = QuestionCatalog(tmp_path)
        assert catalog.claim(QuestionType.LISTEN_THEN_SPEAK, CEFRLevel.B2) is None
        assert not catalog._docs.path_for("questions").exists()

    def test_increment_usage_counts_answers(self, tmp_path):
        catalog = QuestionCatalog(tmp_path)
        catalog.add_many([make_question(QuestionType.LISTEN_THEN_SPEAK, question_id="q")])
        catalog.increment_usage("q")
        assert catalog.get("q").times_used == 1
        assert catalog.get("q").times_served == 0

    def test_increment_unknown_question(self, tmp_path):
        assert QuestionCatalog(tmp_path).increment_usage("ghost") is False


class TestSubscriptionStore:
    def test_status_roundtrip(self, tmp_path):
        store = SubscriptionStore(tmp_path)
        assert store.is_premium("u") is False
        store.set_status("u", "trialing", datetime.now() + timedelta(days=3))
        assert store.is_premium("u") is True
        store.set_status("u", "canceled")
        assert store.is_premium("u") is False
