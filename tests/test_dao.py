import json
from datetime import datetime, timezone

import pytest

from core.types import Citation, DocumentType, InterviewSession, Message
from nlp.exceptions import SessionNotFoundError
from storage.dao import DocumentDAO, SessionDAO

from conftest import make_document


class FakePool:
    def __init__(self, row=None, status="DELETE 0"):
        self.row = row
        self.status = status
        self.queries = []

    async def fetchrow(self, query, *args):
        self.queries.append((query, args))
        return self.row

    async def fetch(self, query, *args):
        self.queries.append((query, args))
        return [self.row] if self.row else []

    async def execute(self, query, *args):
        self.queries.append((query, args))
        return self.status


def _session_row():
    now = datetime.now(timezone.utc)
    messages = [
        {"role": "assistant", "content": "Overall Score: 6", "score": 6,
         "citations": [{"document_id": "d1", "chunk_index": 0, "text": "abc..."}],
         "timestamp": now.isoformat()},
    ]
    return {
        "id": "s1", "owner_id": "u1", "resume_doc_id": "r1", "job_description_doc_id": "j1",
        "messages": json.dumps(messages), "question_count": 3, "is_active": False,
        "created_at": now, "updated_at": now,
    }


async def test_session_rows_are_decoded():
    dao = SessionDAO(FakePool(row=_session_row()))
    session = await dao.find_by_id("s1")
    assert session.question_count == 3
    assert session.messages[0].score == 6
    assert session.messages[0].citations == [Citation(document_id="d1", chunk_index=0, text="abc...")]


async def test_save_touches_updated_at_and_serializes_messages():
    pool = FakePool(status="UPDATE 1")
    dao = SessionDAO(pool)
    session = InterviewSession(owner_id="u1", resume_doc_id="r", job_description_doc_id="j",
                               messages=[Message(role="user", content="hi")])
    session.updated_at = datetime(2000, 1, 1, tzinfo=timezone.utc)

    await dao.save(session)

    assert session.updated_at.year > 2000
    _, args = pool.queries[0]
    assert json.loads(args[1])[0]["content"] == "hi"


async def test_create_returns_existing_active_on_conflict():
    pool = FakePool(row=None)
    dao = SessionDAO(pool)

    async def fake_active(owner_id):
        return InterviewSession(id="existing", owner_id=owner_id, resume_doc_id="r",
                                job_description_doc_id="j", question_count=1)

    dao.find_active_by_owner = fake_active
    session = InterviewSession(owner_id="u1", resume_doc_id="r", job_description_doc_id="j")
    result = await dao.create_if_none_active(session)
    assert result.id == "existing"


async def test_delete_active_parses_status():
    assert await SessionDAO(FakePool(status="DELETE 2")).delete_active("u1") == 2


async def test_document_round_trip_through_json():
    doc = make_document(DocumentType.RESUME, ["python sql"])
    pool = FakePool(status="INSERT 0 1")
    dao = DocumentDAO(pool)
    await dao.save(doc)

    _, args = pool.queries[0]
    row = {
        "id": args[0], "owner_id": args[1], "type": args[2], "filename": args[3],
        "storage_key": args[4], "storage_url": args[5], "full_text": args[6],
        "chunks": args[7], "created_at": args[8],
    }
    loaded = await DocumentDAO(FakePool(row=row)).find_by_id(doc.id)
    assert loaded == doc


async def test_save_of_deleted_session_raises():
    dao = SessionDAO(FakePool(status="UPDATE 0"))
    session = InterviewSession(owner_id="u1", resume_doc_id="r", job_description_doc_id="j")
    with pytest.raises(SessionNotFoundError):
        await dao.save(session)
