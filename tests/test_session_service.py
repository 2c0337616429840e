"""Tests for reflection session storage and checkpoints."""
from datetime import datetime, timedelta

import pytest

from models.reflection import ReflectionExchange, ReflectionSession, ReflectionSessionType
from services.session_service import ReflectionSessionService


@pytest.fixture
def service():
    return ReflectionSessionService()


def add_exchange(session, answer):
    session.exchanges.append(ReflectionExchange("Question?", answer, len(session.exchanges)))


class TestSessions:

    def test_create_and_get(self, service):
        session = service.create_session()
        assert service.get_session(session.id) is session
        assert service.get_session("missing") is None

    def test_list_filters_by_completion(self, service):
        older = service.create_session(ReflectionSession(started_at=datetime.now() - timedelta(hours=1)))
        done = service.create_session(ReflectionSession(completed_at=datetime.now()))
        assert service.list_sessions() == [done, older]
        assert service.list_sessions(completed=True) == [done]
        assert service.list_sessions(completed=False) == [older]

    def test_delete_removes_checkpoints(self, service):
        session = service.create_session()
        service.create_checkpoint(session.id, "conversation")
        assert service.delete_session(session.id)
        assert service.get_latest_checkpoint(session.id) is None
        assert not service.delete_session(session.id)


class TestCheckpoints:

    def test_unknown_session(self, service):
        assert service.create_checkpoint("missing", "conversation") is None
        assert service.resume_from_checkpoint("missing") is None

    def test_resume_rolls_back_exchanges(self, service):
        session = service.create_session()
        add_exchange(session, "first")
        checkpoint = service.create_checkpoint(session.id, "conversation", "Next question?")
        add_exchange(session, "second")

        resumed = service.resume_from_checkpoint(checkpoint.checkpoint_id)

        assert [e.user_response for e in resumed.exchanges] == ["first"]
        assert checkpoint.checkpoint_id == f"cp_{session.id}_1"
        assert checkpoint.current_question == "Next question?"

    def test_latest_checkpoint_has_most_exchanges(self, service):
        session = service.create_session()
        add_exchange(session, "first")
        service.create_checkpoint(session.id, "conversation")
        add_exchange(session, "second")
        service.create_checkpoint(session.id, "conversation")
        assert len(service.get_latest_checkpoint(session.id).exchanges) == 2


class TestPersistence:

    def test_sessions_and_checkpoints_reload(self, tmp_path):
        service = ReflectionSessionService(persist=True, storage_dir=tmp_path)
        session = service.create_session(ReflectionSession(type=ReflectionSessionType.EMOTIONAL_CHECKIN))
        add_exchange(session, "I feel calmer")
        service.create_checkpoint(session.id, "conversation", "What helped?")

        reloaded = ReflectionSessionService(persist=True, storage_dir=tmp_path)

        restored = reloaded.get_session(session.id)
        assert restored.type == ReflectionSessionType.EMOTIONAL_CHECKIN
        assert [e.user_response for e in restored.exchanges] == ["I feel calmer"]
        assert reloaded.get_latest_checkpoint(session.id).current_question == "What helped?"

    def test_unreadable_file_is_skipped(self, tmp_path):
        (tmp_path / "broken.json").write_text("{not json")
        assert ReflectionSessionService(persist=True, storage_dir=tmp_path).list_sessions() == []

    def test_delete_removes_files(self, tmp_path):
        service = ReflectionSessionService(persist=True, storage_dir=tmp_path)
        session = service.create_session()
        service.create_checkpoint(session.id, "conversation")
        service.delete_session(session.id)
        assert list(tmp_path.iterdir()) == []
